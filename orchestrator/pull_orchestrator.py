"""
Pull orchestrator for coordinating the complete pull pipeline.

This module sequences the two passes of a pull: Discover → Render → Cleanup.
Discovery walks the whole outline before anything is written, because links
between pages can only be rewritten once every page's output location is
known.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from converters.block_renderer import BlockRenderer
from exporters.image_handler import ImageHandler
from exporters.layout_strategy import HierarchicalNamedLayoutStrategy, LayoutStrategy
from exporters.markdown_exporter import MarkdownExporter
from fetchers.api_fetcher import ApiFetcher
from fetchers.page_discovery import PageGraphDiscovery
from logger import log_section
from models import NotionPage, normalize_id


@dataclass
class PullContext:
    """State of one pull run, shared by the phases."""

    config: Dict[str, Any]
    fetcher: Any
    layout_strategy: LayoutStrategy
    renderer: BlockRenderer
    image_handler: Optional[ImageHandler] = None
    pages: List[NotionPage] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Dict[str, Any], fetcher=None, logger: Optional[logging.Logger] = None) -> 'PullContext':
        """
        Build the run state from configuration.

        Args:
            config: Validated configuration dictionary
            fetcher: Fetcher to use (an ApiFetcher is created if not provided)
            logger: Logger passed to the components
        """
        fetcher = fetcher or ApiFetcher(config, logger=logger)
        export_config = config.get('export', {})

        image_handler = ImageHandler(
            fetcher,
            image_output_path=export_config.get('image_output_path') or None,
            image_prefix_in_markdown=export_config.get('image_prefix_in_markdown') or '',
            logger=logger
        )

        return cls(
            config=config,
            fetcher=fetcher,
            layout_strategy=HierarchicalNamedLayoutStrategy(logger=logger),
            renderer=BlockRenderer(logger=logger),
            image_handler=image_handler
        )


class PullOrchestrator:
    """Central coordinator sequencing the pull phases: Discover → Render → Cleanup."""

    def __init__(self, context: PullContext, logger: Optional[logging.Logger] = None):
        """
        Initialize pull orchestrator.

        Args:
            context: Run state
            logger: Optional logger instance
        """
        self.context = context
        self.config = context.config
        self.logger = logger or logging.getLogger('notion_docs_puller.orchestrator')

        self.root_page = normalize_id(str(self.config['pull']['root_page']))
        self.markdown_output_path = self.config['export']['markdown_output_path']
        self._discovery_stats: Dict[str, int] = {}

    def discover(self) -> List[NotionPage]:
        """
        Pass 1: walk the outline and build the ordered page list.

        The root directory is set first so its markdown snapshot predates any
        file this run writes.
        """
        self.context.layout_strategy.set_root_directory(self.markdown_output_path)
        if self.context.image_handler is not None:
            self.context.image_handler.set_markdown_root(self.markdown_output_path)

        discovery = PageGraphDiscovery(
            self.context.fetcher,
            self.context.layout_strategy,
            self.markdown_output_path
        )
        self.context.pages = discovery.discover(self.root_page)
        self._discovery_stats = discovery.stats.copy()

        self.logger.info(f"Discovered {len(self.context.pages)} pages")
        return self.context.pages

    def orchestrate_pull(self) -> Dict[str, Any]:
        """
        Orchestrate the complete pull.

        Returns:
            Statistics dictionary per phase

        Raises:
            NotionApiError, FetcherError: When a page cannot be fetched
            OSError: When the output cannot be written
        """
        self.logger.info("Starting pull orchestration")
        start_time = time.time()
        phase_stats: Dict[str, Any] = {}

        log_section("Phase 1: Discovery")
        self.logger.info("Connecting to Notion...")
        self.discover()
        phase_stats['discovery'] = dict(self._discovery_stats, pages=len(self.context.pages))

        log_section("Phase 2: Render")
        exporter = MarkdownExporter(
            self.config,
            self.context.fetcher,
            self.context.layout_strategy,
            image_handler=self.context.image_handler,
            renderer=self.context.renderer
        )
        phase_stats['render'] = exporter.export_pages(self.context.pages)

        log_section("Phase 3: Cleanup")
        removed_files = self.context.layout_strategy.cleanup_old_files()
        removed_images = []
        if self.context.image_handler is not None:
            removed_images = self.context.image_handler.cleanup_old_images()
        phase_stats['cleanup'] = {
            'files_removed': len(removed_files),
            'images_removed': len(removed_images)
        }

        duration = time.time() - start_time
        phase_stats['duration'] = duration
        self.logger.info(f"Pull orchestration complete in {duration:.2f}s")

        return phase_stats

    def preview(self) -> List[NotionPage]:
        """Discovery only, for dry runs; no markdown is written or removed."""
        log_section("Dry Run: Discovery")
        return self.discover()


__all__ = ['PullContext', 'PullOrchestrator']
