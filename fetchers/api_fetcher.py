"""API fetcher implementation for retrieving Notion pages and blocks via REST API."""

from typing import Any, Dict, List, Optional, Union

from models import NotionPage, PageKind, strip_dashes
from notion_api_client import NotionClient
from .base_fetcher import BaseFetcher


class ApiFetcher(BaseFetcher):
    """Fetches Notion pages and block trees via the public REST API."""

    def __init__(
        self,
        config: Dict[str, Any],
        logger=None,
        client: Optional[NotionClient] = None
    ):
        """
        Initialize API fetcher with configuration.

        Args:
            config: Configuration dictionary with notion and advanced settings
            logger: Logger instance (optional)
            client: Preconfigured client (optional, built from config otherwise)
        """
        super().__init__(config, logger)

        self.client = client or NotionClient.from_config(config)

        # Block children are read during discovery, rendering and anchor
        # resolution; one fetch per page per run is enough.
        self._block_cache: Dict[str, List[Dict[str, Any]]] = {}
        self._page_cache: Dict[str, Dict[str, Any]] = {}
        self.stats = {
            'api_calls': 0,
            'cache_hits': 0
        }

    def fetch_page(
        self,
        context: str,
        page_id: str,
        located_as: PageKind = PageKind.OUTLINE_PAGE
    ) -> NotionPage:
        """
        Fetch a page via API and wrap it as a NotionPage under the given context.

        Args:
            context: Output context the page belongs to
            page_id: Notion page id
            located_as: Kind for pages that are not database rows

        Returns:
            NotionPage
        """
        key = strip_dashes(page_id)
        data = self._page_cache.get(key)
        if data is None:
            self.stats['api_calls'] += 1
            data = self.client.get_page(page_id)
            self._page_cache[key] = data
        else:
            self.stats['cache_hits'] += 1

        page = NotionPage.from_api(context, data, located_as=located_as)
        self.logger.debug(f"Fetched page '{page.name_or_title}' ({page.id}) as {page.kind.value}")
        return page

    def fetch_block_children(self, page: Union[NotionPage, str]) -> List[Dict[str, Any]]:
        """
        Fetch the ordered child blocks of a page, served from the run cache
        after the first call.

        Args:
            page: NotionPage or a page/block id

        Returns:
            Ordered list of raw block dictionaries
        """
        block_id = self._id_of(page)
        key = strip_dashes(block_id)

        if key in self._block_cache:
            self.stats['cache_hits'] += 1
            return self._block_cache[key]

        self.stats['api_calls'] += 1
        blocks = self.client.get_block_children(block_id)

        # Nested content (list items, toggles, callouts) is fetched eagerly so
        # the renderer works on a complete tree.
        for block in blocks:
            if block.get('has_children') and block.get('type') not in ('child_page', 'child_database'):
                block['children'] = self.fetch_block_children(block['id'])

        self._block_cache[key] = blocks
        return blocks

    def download(self, url: str) -> bytes:
        """Download a file referenced from a block."""
        self.stats['api_calls'] += 1
        return self.client.download(url)
