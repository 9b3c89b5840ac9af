"""Notion block tree to Markdown renderer."""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from models import plain_text, strip_dashes

# Returns markdown for a block, or None to fall back to the built-in rendering
CustomTransformer = Callable[[Dict[str, Any]], Optional[str]]

LIST_BLOCK_TYPES = {'bulleted_list_item', 'numbered_list_item', 'to_do'}

CHILD_INDENT = '    '

_NOTION_URL_ID = re.compile(
    r'^(?:https?://(?:www\.)?notion\.so/(?:[^/?#]+/)?(?:[^/?#]*-)?|/)'
    r'([0-9a-fA-F]{32}|[0-9a-fA-F-]{36})(?:\?[^#]*)?(#[^\s)]*)?$'
)

# Mapping of Notion code block language names to fence languages
CODE_LANGUAGE_MAP = {
    'plain text': 'text',
    'typescript': 'tsx',
}


def internal_link_target(url: str) -> Optional[str]:
    """
    ``/<id>[#fragment]`` for a URL pointing at a page in the workspace,
    None for any other URL.
    """
    if not url:
        return None

    match = _NOTION_URL_ID.match(url)
    if not match:
        return None

    page_id = strip_dashes(match.group(1))
    if len(page_id) != 32:
        return None

    return f"/{page_id}{match.group(2) or ''}"


class BlockRenderer:
    """
    Renders Notion API blocks to Markdown.

    Every block type can be overridden with ``set_custom_transformer``; the
    exporter uses this to route image blocks through the image handler.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('notion_docs_puller.converters.block_renderer')
        self.custom_transformers: Dict[str, CustomTransformer] = {}
        self.stats = {
            'blocks_rendered': 0,
            'blocks_unsupported': 0
        }

        self._renderers: Dict[str, Callable[[Dict[str, Any]], str]] = {
            'paragraph': self._render_paragraph,
            'heading_1': self._render_heading,
            'heading_2': self._render_heading,
            'heading_3': self._render_heading,
            'bulleted_list_item': self._render_list_item,
            'numbered_list_item': self._render_list_item,
            'to_do': self._render_list_item,
            'quote': self._render_quote,
            'callout': self._render_callout,
            'toggle': self._render_toggle,
            'divider': lambda block: '---',
            'code': self._render_code,
            'equation': self._render_equation,
            'image': self._render_image,
            'bookmark': self._render_bookmark,
            'embed': self._render_bookmark,
            'link_preview': self._render_bookmark,
            'video': self._render_bookmark,
            'file': self._render_bookmark,
            'pdf': self._render_bookmark,
            'link_to_page': self._render_link_to_page,
            'table': self._render_table,
            'column_list': self._render_children_only,
            'column': self._render_children_only,
            'synced_block': self._render_children_only,
            'child_page': lambda block: '',
            'child_database': lambda block: '',
            'table_of_contents': lambda block: '',
            'breadcrumb': lambda block: '',
        }

    def set_custom_transformer(self, block_type: str, transformer: Optional[CustomTransformer]) -> None:
        """Override rendering of ``block_type``; pass None to remove the override."""
        if transformer is None:
            self.custom_transformers.pop(block_type, None)
        else:
            self.custom_transformers[block_type] = transformer

    def blocks_to_markdown(self, blocks: List[Dict[str, Any]]) -> str:
        """
        Render an ordered list of sibling blocks.

        Consecutive list items are separated by a single newline so they form
        one list; everything else is separated by a blank line.
        """
        output: List[str] = []
        previous_type = None

        for block in blocks:
            block_type = block.get('type')
            markdown = self.block_to_markdown(block)
            if not markdown:
                continue

            if output:
                if block_type in LIST_BLOCK_TYPES and previous_type in LIST_BLOCK_TYPES:
                    output.append('\n')
                else:
                    output.append('\n\n')

            output.append(markdown)
            previous_type = block_type

        return ''.join(output)

    def block_to_markdown(self, block: Dict[str, Any]) -> str:
        """Render a single block (and its nested children)."""
        block_type = block.get('type', '')

        transformer = self.custom_transformers.get(block_type)
        if transformer is not None:
            result = transformer(block)
            if result is not None:
                self.stats['blocks_rendered'] += 1
                return result

        renderer = self._renderers.get(block_type)
        if renderer is None:
            self.stats['blocks_unsupported'] += 1
            self.logger.debug(f"Skipping unsupported block type '{block_type}' ({block.get('id')})")
            return ''

        self.stats['blocks_rendered'] += 1
        return renderer(block)

    def rich_text_to_markdown(self, rich_text: Optional[List[Dict[str, Any]]]) -> str:
        """
        Convert a Notion rich text array to Markdown.

        Annotations map to emphasis markers; links to other workspace pages
        become ``/<id>`` targets for the link resolver.
        """
        if not rich_text:
            return ''

        parts = []
        for item in rich_text:
            text = item.get('plain_text', '')
            annotations = item.get('annotations') or {}
            url = item.get('href')

            if item.get('type') == 'mention':
                mention = item.get('mention') or {}
                if mention.get('type') == 'page':
                    url = f"/{strip_dashes(mention['page']['id'])}"
            elif item.get('type') == 'equation':
                parts.append(f"${item['equation']['expression']}$")
                continue

            if not text.strip():
                parts.append(text)
                continue

            # Markdown emphasis does not tolerate whitespace inside the markers
            leading = text[:len(text) - len(text.lstrip())]
            trailing = text[len(text.rstrip()):]
            core = text.strip()

            if annotations.get('code'):
                core = f"`{core}`"
            if annotations.get('strikethrough'):
                core = f"~~{core}~~"
            if annotations.get('underline'):
                core = f"<u>{core}</u>"
            if annotations.get('bold') and annotations.get('italic'):
                core = f"***{core}***"
            elif annotations.get('bold'):
                core = f"**{core}**"
            elif annotations.get('italic'):
                core = f"*{core}*"
            if url:
                core = f"[{core}]({internal_link_target(url) or url})"

            parts.append(f"{leading}{core}{trailing}")

        return ''.join(parts)

    def _content(self, block: Dict[str, Any]) -> Dict[str, Any]:
        return block.get(block.get('type', '')) or {}

    def _text(self, block: Dict[str, Any]) -> str:
        return self.rich_text_to_markdown(self._content(block).get('rich_text'))

    def _children(self, block: Dict[str, Any]) -> str:
        children = block.get('children') or []
        if not children:
            return ''
        return self.blocks_to_markdown(children)

    @staticmethod
    def _indent(markdown: str, prefix: str = CHILD_INDENT) -> str:
        return '\n'.join(prefix + line if line else line for line in markdown.split('\n'))

    def _render_paragraph(self, block: Dict[str, Any]) -> str:
        text = self._text(block)
        children = self._children(block)
        if children:
            return f"{text}\n\n{self._indent(children)}" if text else self._indent(children)
        return text

    def _render_heading(self, block: Dict[str, Any]) -> str:
        level = int(block['type'][-1])
        heading = f"{'#' * level} {self._text(block)}"
        children = self._children(block)
        if children:
            return f"{heading}\n\n{children}"
        return heading

    def _render_list_item(self, block: Dict[str, Any]) -> str:
        block_type = block['type']
        if block_type == 'numbered_list_item':
            marker = '1.'
        elif block_type == 'to_do':
            marker = '- [x]' if self._content(block).get('checked') else '- [ ]'
        else:
            marker = '-'

        item = f"{marker} {self._text(block)}"
        children = self._children(block)
        if children:
            return f"{item}\n{self._indent(children)}"
        return item

    def _render_quote(self, block: Dict[str, Any]) -> str:
        body = self._text(block)
        children = self._children(block)
        if children:
            body = f"{body}\n\n{children}"
        return self._indent(body, '> ').replace('\n\n', '\n>\n')

    def _render_callout(self, block: Dict[str, Any]) -> str:
        icon = (self._content(block).get('icon') or {})
        emoji = icon.get('emoji') if icon.get('type') == 'emoji' else None

        body = self._text(block)
        if emoji:
            body = f"{emoji} {body}"
        children = self._children(block)
        if children:
            body = f"{body}\n\n{children}"

        return f":::note\n\n{body}\n\n:::"

    def _render_toggle(self, block: Dict[str, Any]) -> str:
        summary = self._text(block)
        children = self._children(block)
        return f"<details>\n<summary>{summary}</summary>\n\n{children}\n\n</details>"

    def _render_code(self, block: Dict[str, Any]) -> str:
        content = self._content(block)
        language = content.get('language') or ''
        language = CODE_LANGUAGE_MAP.get(language, language)
        code = plain_text(content.get('rich_text'))
        return f"```{language}\n{code}\n```"

    def _render_equation(self, block: Dict[str, Any]) -> str:
        return f"$$\n{self._content(block).get('expression', '')}\n$$"

    def _file_url(self, block: Dict[str, Any]) -> str:
        content = self._content(block)
        if content.get('type') == 'external':
            return content['external']['url']
        if content.get('type') == 'file':
            return content['file']['url']
        return content.get('url', '')

    def _render_image(self, block: Dict[str, Any]) -> str:
        caption = plain_text(self._content(block).get('caption'))
        return f"![{caption}]({self._file_url(block)})"

    def _render_bookmark(self, block: Dict[str, Any]) -> str:
        url = self._file_url(block)
        caption = plain_text(self._content(block).get('caption')) or url
        return f"[{caption}]({url})"

    def _render_link_to_page(self, block: Dict[str, Any]) -> str:
        target = self._content(block)
        if target.get('type') != 'page_id':
            return ''
        # The title is unknown here; the link resolver fills it in
        return f"[link_to_page]({target['page_id']})"

    def _render_table(self, block: Dict[str, Any]) -> str:
        rows = [
            [self.rich_text_to_markdown(cell).replace('|', '\\|') for cell in row['table_row']['cells']]
            for row in block.get('children') or []
            if row.get('type') == 'table_row'
        ]
        if not rows:
            return ''

        width = max(len(row) for row in rows)
        rows = [row + [''] * (width - len(row)) for row in rows]

        lines = [f"| {' | '.join(rows[0])} |", f"|{'---|' * width}"]
        lines.extend(f"| {' | '.join(row)} |" for row in rows[1:])
        return '\n'.join(lines)

    def _render_children_only(self, block: Dict[str, Any]) -> str:
        return self._children(block)


__all__ = ['BlockRenderer', 'CustomTransformer', 'internal_link_target', 'CODE_LANGUAGE_MAP']
