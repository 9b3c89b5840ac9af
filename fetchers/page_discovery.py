"""Recursive discovery of the outline page graph.

Walks the outline starting at the root page and builds the flat, ordered list
of every page that will become a markdown file: content pages placed directly
in the outline ("simple" pages) and pages the outline only links to (usually
rows of the content database). Navigation pages become directory levels and
produce no file themselves.

Rendering cannot start until this list is complete, because a link between two
pages can only be rewritten once the output location of its target is known.
"""

import dataclasses
import logging
from typing import List, Optional, Set, Tuple

from models import ROOT_OUTLINE_TITLE, NodeRole, NotionPage, PageKind
from .base_fetcher import BaseFetcher
from .content_classifier import classify_blocks, classify_node


class PageGraphDiscovery:
    """Builds the ordered page list for one pull."""

    def __init__(
        self,
        fetcher: BaseFetcher,
        layout_strategy,
        markdown_output_path: str,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            fetcher: Source of pages and blocks
            layout_strategy: LayoutStrategy asked for a new context at each level
            markdown_output_path: Root directory of the markdown output
            logger: Logger instance
        """
        self.fetcher = fetcher
        self.layout_strategy = layout_strategy
        self.markdown_output_path = markdown_output_path
        self.logger = logger or logging.getLogger('notion_docs_puller.fetcher.discovery')

        self.pages: List[NotionPage] = []
        self._seen_keys: Set[Tuple[PageKind, str]] = set()
        self.stats = {
            'outline_pages_read': 0,
            'levels_created': 0,
            'conflicts_skipped': 0,
            'empty_pages_skipped': 0,
            'duplicates_skipped': 0
        }

    def discover(self, root_id: str) -> List[NotionPage]:
        """
        Walk the outline from its root page.

        Args:
            root_id: Id of the outline root page

        Returns:
            Ordered list of pages to render, each with its output context
        """
        self.pages = []
        self._seen_keys = set()

        self._walk("", root_id, is_root=True)

        self.logger.info(
            f"Discovered {len(self.pages)} pages in {self.stats['outline_pages_read']} outline pages"
        )
        return list(self.pages)

    def _walk(self, incoming_context: str, page_id: str, is_root: bool) -> None:
        page = self.fetcher.fetch_page(incoming_context, page_id, PageKind.OUTLINE_PAGE)
        self.stats['outline_pages_read'] += 1

        self.logger.info(f"Reading Outline Page {incoming_context}/{page.name_or_title}")

        info = classify_blocks(self.fetcher.fetch_block_children(page))
        role = classify_node(info, is_root)

        if role == NodeRole.CONFLICT:
            self.stats['conflicts_skipped'] += 1
            self.logger.error(
                f'Skipping "{page.name_or_title}" and its children. Pages that are both levels '
                f'and have content at the same time are not supported.'
            )
            return

        if role == NodeRole.CONTENT:
            if page.kind == PageKind.OUTLINE_PAGE:
                page = dataclasses.replace(page, kind=PageKind.SIMPLE_PAGE)
            self._append(page)

            # Content wins: outline pages with text are files even when they also link pages
            if info.links_pages:
                self.logger.warning(
                    f'Note: The page "{page.name_or_title}" is in the outline, has content, and also '
                    f'points at other pages. It will be treated as a simple content page. This is no '
                    f'problem, unless you intended to have all your content pages in the database.'
                )
            return

        if role == NodeRole.NAVIGATION:
            context = incoming_context
            if not is_root and page.name_or_title != ROOT_OUTLINE_TITLE:
                context = self.layout_strategy.new_level(
                    self.markdown_output_path,
                    incoming_context,
                    page.name_or_title
                )
                self.stats['levels_created'] += 1

            for child_id in info.child_pages:
                self._walk(context, child_id, is_root=False)

            for linked_id in info.links_pages:
                self._append(self.fetcher.fetch_page(context, linked_id, PageKind.SIMPLE_PAGE))
            return

        self.stats['empty_pages_skipped'] += 1
        self.logger.warning(
            f'Warning: The page "{page.name_or_title}" is in the outline but appears to not have '
            f'content, links to other pages, or child pages. It will be skipped.'
        )

    def _append(self, page: NotionPage) -> None:
        if page.key in self._seen_keys:
            self.stats['duplicates_skipped'] += 1
            self.logger.warning(
                f'The page "{page.name_or_title}" ({page.id}) is referenced more than once in the '
                f'outline. Only its first position ({self._first_context(page)}) is used.'
            )
            return

        self._seen_keys.add(page.key)
        self.pages.append(page)

    def _first_context(self, page: NotionPage) -> str:
        for existing in self.pages:
            if existing.key == page.key:
                return existing.context or "/"
        return "/"


__all__ = ['PageGraphDiscovery']
