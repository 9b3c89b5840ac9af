"""Notion REST API client with retry logic, rate limiting and pagination."""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config_loader import DEFAULT_NOTION_VERSION
from models import normalize_id

logger = logging.getLogger('notion_docs_puller.client')

NOTION_API_BASE = 'https://api.notion.com/v1'


class NotionApiError(Exception):
    """Raised when the Notion API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class NotionClient:
    """Notion REST API client with bearer authentication, retries and rate limiting."""

    def __init__(
        self,
        token: str,
        api_version: str = DEFAULT_NOTION_VERSION,
        base_url: str = NOTION_API_BASE,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        rate_limit: float = 0.35
    ):
        """
        Initialize the client.

        Args:
            token: Notion integration token
            api_version: Value of the Notion-Version header
            base_url: API base URL
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            rate_limit: Minimum seconds between requests (Notion allows ~3 per second)
        """
        if not token:
            raise ValueError("Notion client requires an integration token")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit = rate_limit
        self.last_request_time = 0.0

        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Notion-Version': api_version,
            'Content-Type': 'application/json',
        })

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        # File URLs are pre-signed; sending the Notion bearer token to them is rejected
        self.download_session = requests.Session()
        self.download_session.mount("http://", HTTPAdapter(max_retries=retry_strategy))
        self.download_session.mount("https://", HTTPAdapter(max_retries=retry_strategy))

        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}, "
                     f"backoff_factor={retry_backoff_factor}, rate_limit={rate_limit}s")

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting if configured."""
        if self.rate_limit <= 0:
            return

        time_since_last = time.time() - self.last_request_time

        if time_since_last < self.rate_limit:
            time.sleep(self.rate_limit - time_since_last)

        self.last_request_time = time.time()

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make a request to the Notion API and return the decoded JSON body.

        Raises:
            NotionApiError: For error responses
            requests.exceptions.RequestException: For transport errors
        """
        self._enforce_rate_limit()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start_time = time.time()
        logger.debug(f"API Request: {method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)

            retry_count = 0
            while response.status_code == 429 and retry_count < self.max_retries:
                retry_after = response.headers.get('Retry-After', '1')
                try:
                    wait_time = float(retry_after)
                except ValueError:
                    wait_time = 1.0

                retry_count += 1
                logger.warning(f"Rate limited (429): attempt {retry_count}/{self.max_retries}, "
                               f"waiting {wait_time}s before retry")
                response.close()
                time.sleep(wait_time)
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)

            logger.debug(f"API Response: {response.status_code} {url} ({time.time() - start_time:.3f}s)")

            if response.status_code != 200:
                raise self._error_from_response(method, url, response)

            return response.json()

        except requests.exceptions.Timeout:
            logger.error(f"Request timeout after {self.timeout}s: {method} {url}")
            raise

        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {method} {url} - {str(e)}")
            raise

        finally:
            self.last_request_time = time.time()

    @staticmethod
    def _error_from_response(method: str, url: str, response: requests.Response) -> NotionApiError:
        code = None
        details = response.text[:500]
        try:
            error_json = response.json()
            code = error_json.get('code')
            details = error_json.get('message', details)
            logger.debug(f"Error details: {json.dumps(error_json, indent=2)}")
        except ValueError:
            pass

        logger.error(f"HTTP Error {response.status_code}: {method} {url} - {details}")
        return NotionApiError(
            f"Notion API error {response.status_code} for {url}: {details}",
            status_code=response.status_code,
            code=code
        )

    def get_page(self, page_id: str) -> Dict[str, Any]:
        """
        Fetch a page object (properties and parent, no content).

        Args:
            page_id: Notion page id in any accepted form

        Returns:
            Page dictionary
        """
        return self._make_request('GET', f'/pages/{normalize_id(page_id)}')

    def get_block_children(self, block_id: str, page_size: int = 100) -> List[Dict[str, Any]]:
        """
        Fetch all child blocks of a page or block, following pagination.

        Args:
            block_id: Page or block id
            page_size: Number of blocks per request (Notion maximum is 100)

        Returns:
            Ordered list of block dictionaries
        """
        block_id = normalize_id(block_id)
        blocks: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            params: Dict[str, Any] = {'page_size': page_size}
            if cursor:
                params['start_cursor'] = cursor

            data = self._make_request('GET', f'/blocks/{block_id}/children', params=params)
            blocks.extend(data.get('results', []))

            if not data.get('has_more'):
                break
            cursor = data.get('next_cursor')

        logger.debug(f"Fetched {len(blocks)} blocks for {block_id}")
        return blocks

    def download(self, url: str) -> bytes:
        """
        Download a file referenced by a block (image, file).

        Raises:
            requests.exceptions.HTTPError: For HTTP errors after retries
        """
        logger.debug(f"Downloading {url}")
        response = self.download_session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'NotionClient':
        """
        Initialize the client from a configuration dictionary.

        Args:
            config: Configuration dictionary with notion and advanced settings

        Returns:
            NotionClient instance
        """
        notion_config = config.get('notion', {})
        advanced_config = config.get('advanced', {})

        return cls(
            token=notion_config.get('token'),
            api_version=notion_config.get('api_version', DEFAULT_NOTION_VERSION),
            timeout=advanced_config.get('request_timeout', 30),
            max_retries=advanced_config.get('max_retries', 3),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', 2.0),
            rate_limit=advanced_config.get('rate_limit', 0.35)
        )


__all__ = ['NotionClient', 'NotionApiError', 'normalize_id', 'NOTION_API_BASE']
