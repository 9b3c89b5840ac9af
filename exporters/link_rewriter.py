"""Link resolver for rewriting links between Notion pages to output-relative paths."""

import logging
import re
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from models import NotionPage, ParsedLink, plain_text, strip_dashes

MAX_CHARS_BETWEEN_BRACKETS = 1000  # Prevent catastrophic backtracking

# Text the renderer emits for a link to a page that carries no caption of its own
LINK_TO_PAGE_TEXT = 'link_to_page'
PROBLEM_LINK_TEXT = 'Problem Link'

_NOTION_ID = (
    r'(?:[0-9a-fA-F]{32}'
    r'|[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})'
)

# [text](id), [text](/id), optionally with #fragment; images are excluded.
# Inline links arrive with a leading slash, bare page links without one.
INTERNAL_LINK_PATTERN = re.compile(
    r'(?<!!)\[([^\]]{0,' + str(MAX_CHARS_BETWEEN_BRACKETS) + r'})\]'
    r'\((/?' + _NOTION_ID + r'(?:#[^)\s]*)?)\)'
)


def heading_anchor(text: str) -> str:
    """Anchor slug for a heading: lower case, spaces replaced by hyphens."""
    return text.lower().replace(' ', '-')


class LinkResolver:
    """
    Rewrites links between Notion pages in rendered markdown.

    This resolver:
    1. Scans the markdown once for links whose target is a raw Notion id
    2. Looks each target up in the discovered page list
    3. Replaces the target with the page's link path from the layout strategy,
       adding a heading anchor when the link points at a heading block
    4. Fills in the page title for uncaptioned ``link_to_page`` links

    Links that cannot be resolved are left untouched and reported.
    """

    def __init__(
        self,
        pages: Sequence[NotionPage],
        layout_strategy,
        fetcher,
        logger: Optional[logging.Logger] = None,
        link_relative_to_root: bool = True
    ):
        """
        Args:
            pages: Pages that are valid link targets
            layout_strategy: LayoutStrategy providing link paths
            fetcher: Fetcher used to read target blocks for anchor links
            logger: Logger instance
            link_relative_to_root: Passed through to ``get_link_path_for_page``
        """
        self.pages = pages
        self.layout_strategy = layout_strategy
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger('notion_docs_puller.exporters.link_rewriter')
        self.link_relative_to_root = link_relative_to_root
        self._output_links: Optional[Set[str]] = None

        self.stats = {
            'links_found': 0,
            'links_rewritten': 0,
            'links_unresolved': 0,
            'link_texts_missing': 0
        }

    def iter_links(self, markdown: str) -> Iterator[ParsedLink]:
        """Lazily yield every internal link in ``markdown`` in document order."""
        for match in INTERNAL_LINK_PATTERN.finditer(markdown):
            yield ParsedLink(
                display_text=match.group(1),
                href=match.group(2),
                span=match.span()
            )

    def resolve_links(self, markdown: str) -> str:
        """
        Rewrite all internal links in ``markdown``.

        Every link is resolved independently and all replacements are applied
        by position afterwards, so text shifts never affect other links.

        Args:
            markdown: Rendered markdown of one page

        Returns:
            Markdown with internal link targets and texts substituted
        """
        replacements: List[Tuple[Tuple[int, int], str]] = []

        for link in self.iter_links(markdown):
            # A page whose file name is 32 hex characters yields an output
            # link that looks like a raw id; an id match still wins.
            if self.find_page(link.page_id) is None and self._is_output_link(link):
                continue

            self.stats['links_found'] += 1

            text = self._convert_link_text(link)
            target = self._convert_href(link)

            if target is None:
                target = link.href

            if text != link.display_text or target != link.href:
                replacements.append((link.span, f'[{text}]({target})'))

        return self._apply_replacements(markdown, replacements)

    def find_page(self, link_id: str) -> Optional[NotionPage]:
        """Page in the list whose id matches ``link_id`` (dashes ignored)."""
        for page in self.pages:
            if page.matches_link_id(link_id):
                return page
        return None

    def _is_output_link(self, link: ParsedLink) -> bool:
        if self._output_links is None:
            self._output_links = {
                self.layout_strategy.get_link_path_for_page(page, self.link_relative_to_root)
                for page in self.pages
            }
        return link.href.split('#', 1)[0] in self._output_links

    def _convert_href(self, link: ParsedLink) -> Optional[str]:
        page = self.find_page(link.page_id)

        if page is not None:
            link_path = self.layout_strategy.get_link_path_for_page(page, self.link_relative_to_root)
            fragment = link.fragment

            if not fragment:
                self.logger.debug(f"Converting Link {link.href} --> {link_path}")
                self.stats['links_rewritten'] += 1
                return link_path

            heading = self._find_heading(page, fragment)
            if heading is not None:
                converted = f"{link_path}#{heading_anchor(heading)}"
                self.logger.debug(f"Converting Link {link.href} --> {converted}")
                self.stats['links_rewritten'] += 1
                return converted

        self.stats['links_unresolved'] += 1
        self.logger.warning(
            f"Could not find the target of this link. Note that links to outline sections "
            f"are not supported. {link.raw_target}"
        )
        return None

    def _convert_link_text(self, link: ParsedLink) -> str:
        # Notion shows the page name for an uncaptioned page link, but the
        # rendered markdown only carries a placeholder.
        if link.display_text != LINK_TO_PAGE_TEXT:
            return link.display_text

        page = self.find_page(link.page_id)
        if page is not None:
            return page.name_or_title

        self.stats['link_texts_missing'] += 1
        self.logger.error(
            f"Encountered a link to page {link.raw_target} but could not find that page."
        )
        return PROBLEM_LINK_TEXT

    def _find_heading(self, page: NotionPage, fragment: str) -> Optional[str]:
        block_id = strip_dashes(fragment)

        for block in self.fetcher.fetch_block_children(page):
            if strip_dashes(block.get('id', '')) != block_id:
                continue

            block_type = block.get('type', '')
            if not block_type.startswith('heading'):
                self.logger.debug(f"Link fragment {fragment} points at a {block_type} block, not a heading")
                return None

            return plain_text((block.get(block_type) or {}).get('rich_text'))

        return None

    @staticmethod
    def _apply_replacements(markdown: str, replacements: List[Tuple[Tuple[int, int], str]]) -> str:
        if not replacements:
            return markdown

        parts = []
        position = 0
        for (start, end), replacement in replacements:
            parts.append(markdown[position:start])
            parts.append(replacement)
            position = end
        parts.append(markdown[position:])

        return ''.join(parts)


__all__ = [
    'LinkResolver',
    'heading_anchor',
    'INTERNAL_LINK_PATTERN',
    'LINK_TO_PAGE_TEXT',
    'PROBLEM_LINK_TEXT'
]
