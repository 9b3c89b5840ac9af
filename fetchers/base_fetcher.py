"""Abstract base fetcher interface and common functionality."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from models import NotionPage, PageKind


class FetcherError(Exception):
    """Base exception for fetcher-related errors."""
    pass


class BaseFetcher(ABC):
    """Abstract base class for Notion content fetchers."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger=None):
        """
        Initialize base fetcher with configuration and logger.

        Args:
            config: Configuration dictionary
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.config = config or {}
        self.logger = logger or logging.getLogger('notion_docs_puller.fetcher')

    @abstractmethod
    def fetch_page(
        self,
        context: str,
        page_id: str,
        located_as: PageKind = PageKind.OUTLINE_PAGE
    ) -> NotionPage:
        """
        Fetch a single page's metadata and place it under an output context.

        Args:
            context: Output context the page belongs to
            page_id: Notion page id
            located_as: Kind for pages that are not database rows

        Returns:
            NotionPage
        """
        pass

    @abstractmethod
    def fetch_block_children(self, page: Union[NotionPage, str]) -> List[Dict[str, Any]]:
        """
        Fetch the ordered raw child blocks of a page or block.

        Args:
            page: NotionPage or a page/block id

        Returns:
            Ordered list of raw block dictionaries
        """
        pass

    @abstractmethod
    def download(self, url: str) -> bytes:
        """
        Download a file (image, attachment) referenced by a block.

        Args:
            url: File URL from the block payload

        Returns:
            File content
        """
        pass

    @staticmethod
    def _id_of(page: Union[NotionPage, str]) -> str:
        return page.id if isinstance(page, NotionPage) else page
