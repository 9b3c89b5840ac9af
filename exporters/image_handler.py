"""Image handler for downloading image blocks and rewriting their markdown paths."""

import hashlib
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
from urllib.parse import unquote, urlparse

import requests

from fetchers.base_fetcher import FetcherError
from models import plain_text

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp', '.bmp')
DEFAULT_IMAGE_EXTENSION = '.png'

# Images written by this handler are named after a prefix of their content hash
HASH_LENGTH = 16
_GENERATED_NAME = re.compile(r'^[0-9a-f]{' + str(HASH_LENGTH) + r'}\.[a-z0-9]+$')


class ImageHandler:
    """
    Downloads image blocks and produces the markdown that references them.

    This handler:
    1. Downloads the image bytes through the fetcher
    2. Names the file after its content hash so unchanged images keep their name
    3. Saves it to the image output directory, or next to the page when unset
    4. Records every file it produced so stale images can be pruned afterwards
    """

    def __init__(
        self,
        fetcher,
        image_output_path: Union[str, Path, None] = None,
        image_prefix_in_markdown: str = '',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the image handler.

        Args:
            fetcher: Fetcher used to download image files
            image_output_path: Shared image directory; None or '' places each
                image next to the page that uses it
            image_prefix_in_markdown: Path prefix used in the markdown for images
                in the shared directory (defaults to the directory itself)
            logger: Logger instance
        """
        self.fetcher = fetcher
        self.image_output_path = Path(image_output_path) if image_output_path else None
        self.image_prefix = (image_prefix_in_markdown or (str(image_output_path) if image_output_path else '')).rstrip('/')
        self.logger = logger or logging.getLogger('notion_docs_puller.exporters.image_handler')

        self._seen_images: Set[Path] = set()
        # Trees searched for stale images during cleanup
        self._cleanup_roots: Set[Path] = set()

        self.stats = {
            'images_found': 0,
            'images_written': 0,
            'images_unchanged': 0,
            'images_failed': 0
        }

        if self.image_output_path is not None:
            self.image_output_path.mkdir(parents=True, exist_ok=True)
            self._cleanup_roots.add(self.image_output_path.resolve())

    def set_markdown_root(self, path: Union[str, Path]) -> None:
        """
        Include the markdown tree in cleanup.

        Images placed next to their pages live below the markdown root, and a
        page that was moved or deleted leaves its images in a directory this
        pull may never write to again.
        """
        self._cleanup_roots.add(Path(path).resolve())

    def markdown_image_transformer(
        self,
        block: Dict[str, Any],
        directory_containing_markdown: Union[str, Path]
    ) -> Optional[str]:
        """
        Render an image block, downloading the image first.

        Returns None when the download fails so the renderer falls back to
        referencing the remote URL.
        """
        image = block.get('image') or {}
        url = (image.get(image.get('type', '')) or {}).get('url')
        if not url:
            return None

        self.stats['images_found'] += 1
        caption = plain_text(image.get('caption'))

        try:
            content = self.fetcher.download(url)
        except (requests.RequestException, FetcherError) as e:
            self.stats['images_failed'] += 1
            self.logger.warning(f"Failed to download image {block.get('id')}: {e}")
            return None

        name = self._file_name(url, content)
        directory = self.image_output_path or Path(directory_containing_markdown)
        self._save(directory / name, content)

        if self.image_output_path is not None:
            link = f"{self.image_prefix}/{name}" if self.image_prefix else name
        else:
            link = f"./{name}"

        return f"![{caption}]({link})"

    def _file_name(self, url: str, content: bytes) -> str:
        content_hash = hashlib.sha256(content).hexdigest()[:HASH_LENGTH]

        suffix = Path(unquote(urlparse(url).path)).suffix.lower()
        if suffix not in IMAGE_EXTENSIONS:
            suffix = DEFAULT_IMAGE_EXTENSION

        return f"{content_hash}{suffix}"

    def _save(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = path.resolve()
        self._seen_images.add(resolved)
        self._cleanup_roots.add(resolved.parent)

        # Same name means same content
        if path.exists():
            self.stats['images_unchanged'] += 1
            self.logger.debug(f"Image unchanged: {path}")
            return

        path.write_bytes(content)
        self.stats['images_written'] += 1
        self.logger.debug(f"Saved image -> {path}")

    def cleanup_old_images(self) -> List[Path]:
        """
        Delete images from earlier pulls that no page referenced in this one.

        Only files carrying a generated content-hash name are considered. They
        are searched recursively below the shared image directory, the markdown
        root and every directory an image was written to.

        Returns:
            Images that were removed
        """
        removed: List[Path] = []
        candidates: Set[Path] = set()

        for root in sorted(self._cleanup_roots):
            if not root.is_dir():
                continue

            for path in root.rglob('*'):
                if not path.is_file() or not _GENERATED_NAME.match(path.name):
                    continue
                if path.suffix.lower() not in IMAGE_EXTENSIONS:
                    continue
                candidates.add(path.resolve())

        for path in sorted(candidates - self._seen_images):
            try:
                path.unlink()
                removed.append(path)
                self.logger.info(f"Removed old image {path}")
            except OSError as e:
                self.logger.error(f"Could not remove old image {path}: {e}")

        return removed

    def get_stats(self) -> Dict[str, int]:
        """Get image processing statistics."""
        return self.stats.copy()


__all__ = ['ImageHandler', 'IMAGE_EXTENSIONS']
