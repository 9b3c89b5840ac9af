"""Page renderer writing discovered Notion pages to markdown files."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from tqdm import tqdm

from converters.block_renderer import BlockRenderer
from logger import ProgressTracker
from models import NotionPage, PageKind
from .image_handler import ImageHandler
from .layout_strategy import MARKDOWN_EXTENSION
from .link_rewriter import LinkResolver

# Status tag value that disables the database status filter
ANY_STATUS = '*'


class MarkdownExporter:
    """
    Writes the page list produced by discovery to markdown files.

    For every page, in list order, this exporter:
    1. Skips database pages whose status is not the configured tag
    2. Marks the page's file as seen by the layout strategy
    3. Fetches and renders the page's blocks, routing images through the image handler
    4. Resolves links to other pages
    5. Writes the file, optionally with YAML front matter
    """

    def __init__(
        self,
        config: Dict[str, Any],
        fetcher,
        layout_strategy,
        image_handler: Optional[ImageHandler] = None,
        renderer: Optional[BlockRenderer] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the markdown exporter.

        Args:
            config: Configuration dictionary with pull and export settings
            fetcher: Fetcher providing page blocks
            layout_strategy: LayoutStrategy placing pages (root already set)
            image_handler: ImageHandler for image blocks (none: images stay remote)
            renderer: BlockRenderer (created if not provided)
            logger: Logger instance
        """
        self.config = config
        self.fetcher = fetcher
        self.layout_strategy = layout_strategy
        self.image_handler = image_handler
        self.logger = logger or logging.getLogger('notion_docs_puller.exporters.markdown_exporter')
        self.renderer = renderer or BlockRenderer(logger=self.logger)

        export_config = config.get('export', {})
        self.status_tag = config.get('pull', {}).get('status_tag', 'Publish')
        self.write_frontmatter = export_config.get('frontmatter', False)
        self.show_progress = export_config.get('progress_bars', True)

        self.link_resolver: Optional[LinkResolver] = None

        self.stats = {
            'pages_written': 0,
            'pages_skipped_status': 0,
            'links_rewritten': 0,
            'links_unresolved': 0
        }

    def is_publishable(self, page: NotionPage) -> bool:
        """Whether the status filter lets ``page`` through."""
        if page.kind != PageKind.DATABASE_PAGE or self.status_tag == ANY_STATUS:
            return True
        return page.status == self.status_tag

    def publishable_pages(self, pages: Sequence[NotionPage]) -> List[NotionPage]:
        return [page for page in pages if self.is_publishable(page)]

    def export_pages(self, pages: Sequence[NotionPage]) -> Dict[str, Any]:
        """
        Render and write every page in ``pages``.

        Links are only resolved against pages that are actually written.

        Args:
            pages: Ordered page list from discovery

        Returns:
            Statistics dictionary with export results

        Raises:
            OSError: If a page file cannot be written
        """
        link_targets = self.publishable_pages(pages)
        self.link_resolver = LinkResolver(link_targets, self.layout_strategy, self.fetcher, logger=self.logger)

        sidebar_position = 0
        with ProgressTracker(total_items=len(pages), item_type='pages') as tracker:
            for page in tqdm(pages, desc="Pages", unit="page", disable=not self._should_show_progress()):
                if not self.is_publishable(page):
                    self.logger.debug(
                        f"Skipping page because status is not '{self.status_tag}': {page.name_or_title}"
                    )
                    self.stats['pages_skipped_status'] += 1
                    tracker.increment(written=False)
                    continue

                sidebar_position += 1
                self.export_page(page, sidebar_position)
                tracker.increment(written=True)

        self.stats['links_rewritten'] = self.link_resolver.stats['links_rewritten']
        self.stats['links_unresolved'] = self.link_resolver.stats['links_unresolved']

        self._log_export_summary()
        return self.stats.copy()

    def export_page(self, page: NotionPage, sidebar_position: int = 1) -> Path:
        """
        Render one page and write its markdown file.

        Returns:
            Path of the written file
        """
        if self.link_resolver is None:
            self.link_resolver = LinkResolver([page], self.layout_strategy, self.fetcher, logger=self.logger)

        self.logger.info(f"Reading Page {page.context}/{page.name_or_title}")
        self.layout_strategy.page_was_seen(page)

        md_path = self.layout_strategy.get_path_for_page(page, MARKDOWN_EXTENSION)
        blocks = self.fetcher.fetch_block_children(page)

        # Images are placed relative to the page being rendered
        if self.image_handler is not None:
            directory = md_path.parent
            self.renderer.set_custom_transformer(
                'image',
                lambda block: self.image_handler.markdown_image_transformer(block, directory)
            )

        markdown = self.renderer.blocks_to_markdown(blocks)
        markdown = self.link_resolver.resolve_links(markdown)

        if self.write_frontmatter:
            content = f"{self._generate_frontmatter(page, sidebar_position)}\n\n{markdown}"
        else:
            content = markdown
        if not content.endswith('\n'):
            content += '\n'

        try:
            md_path.parent.mkdir(parents=True, exist_ok=True)
            md_path.write_text(content, encoding='utf-8')
        except OSError as e:
            self.logger.error(f"Failed to write '{page.name_or_title}' to {md_path}: {e}")
            raise

        self.stats['pages_written'] += 1
        self.logger.debug(f"Wrote {md_path}")
        return md_path

    def _generate_frontmatter(self, page: NotionPage, sidebar_position: int) -> str:
        """
        Generate YAML frontmatter for a page.

        Returns:
            YAML frontmatter string
        """
        frontmatter: Dict[str, Any] = {
            'title': page.name_or_title,
            'sidebar_position': sidebar_position
        }
        if page.slug:
            frontmatter['slug'] = page.slug
        if page.keywords:
            frontmatter['keywords'] = [k.strip() for k in page.keywords.split(',') if k.strip()]

        yaml_content = yaml.dump(
            frontmatter,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=1000
        )
        return f"---\n{yaml_content}---"

    def _should_show_progress(self) -> bool:
        """Check if progress bars should be displayed."""
        return bool(self.show_progress) and sys.stdout.isatty()

    def _log_export_summary(self) -> None:
        """Log final export statistics."""
        self.logger.info("=" * 60)
        self.logger.info("MARKDOWN EXPORT SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Pages written: {self.stats['pages_written']}")
        if self.stats['pages_skipped_status'] > 0:
            self.logger.info(f"Pages skipped by status: {self.stats['pages_skipped_status']}")
        self.logger.info(f"Links rewritten: {self.stats['links_rewritten']}")
        if self.stats['links_unresolved'] > 0:
            self.logger.info(f"Links unresolved: {self.stats['links_unresolved']}")
        if self.image_handler is not None:
            image_stats = self.image_handler.get_stats()
            self.logger.info(f"Images written: {image_stats['images_written']}")
            if image_stats['images_failed'] > 0:
                self.logger.info(f"Images failed: {image_stats['images_failed']}")
        self.logger.info("=" * 60)


__all__ = ['MarkdownExporter', 'ANY_STATUS']
