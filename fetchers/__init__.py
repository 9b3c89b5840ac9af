"""Fetchers package for retrieving Notion content and discovering the outline page graph."""

from .base_fetcher import BaseFetcher, FetcherError
from .api_fetcher import ApiFetcher
from .content_classifier import classify_blocks, classify_node
from .page_discovery import PageGraphDiscovery

__all__ = [
    'BaseFetcher',
    'FetcherError',
    'ApiFetcher',
    'classify_blocks',
    'classify_node',
    'PageGraphDiscovery'
]
