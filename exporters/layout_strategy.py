"""Placement of pages in the output directory tree.

A layout strategy decides which directory each page's file lives in, what the
file is called, and what link other pages use to reach it. It also remembers
which markdown files existed before the pull so files for pages that were
removed or renamed in Notion can be pruned afterwards.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Set, Union

from models import NotionPage

MARKDOWN_EXTENSION = '.md'

# Characters that are illegal in file names on at least one common platform
_ILLEGAL_CHARS = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')


def sanitize_name(name: str) -> str:
    """
    Convert a page or level title to a file-system and URL friendly name.

    Case is preserved; spaces (and encoded spaces) become hyphens.
    """
    sanitized = _ILLEGAL_CHARS.sub('', name or '')
    sanitized = sanitized.strip().rstrip('.')
    sanitized = sanitized.replace('%20', '-').replace(' ', '-')

    if sanitized in ('', '.', '..'):
        return 'untitled'

    return sanitized


class LayoutStrategy(ABC):
    """Base placement policy; concrete strategies decide directory naming."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('notion_docs_puller.exporters.layout')
        self.root_directory: Optional[Path] = None
        self._files_before_pull: Set[Path] = set()
        self._seen_files: Set[Path] = set()

    def set_root_directory(self, path: Union[str, Path]) -> None:
        """
        Set the markdown root and snapshot the markdown files already in it.

        Raises:
            OSError: If the root directory cannot be created
        """
        self.root_directory = Path(path)
        self.root_directory.mkdir(parents=True, exist_ok=True)

        self._files_before_pull = {
            p.resolve() for p in self.root_directory.rglob(f'*{MARKDOWN_EXTENSION}') if p.is_file()
        }
        self._seen_files = set()

        self.logger.debug(
            f"Layout root {self.root_directory} has {len(self._files_before_pull)} existing markdown files"
        )

    @abstractmethod
    def new_level(self, root_dir: Union[str, Path], context: str, level_name: str) -> str:
        """
        Create a nesting level below ``context`` and return its context.

        Must be idempotent for equal inputs.

        Raises:
            OSError: If the level directory cannot be created
        """

    @abstractmethod
    def get_path_for_page(self, page: NotionPage, extension: str) -> Path:
        """Output file path of a page; a pure function of its context and name."""

    def get_link_path_for_page(self, page: NotionPage, relative_to_root: bool = True) -> str:
        """
        Link target other pages use to reach ``page``.

        Always forward slashes and no extension. With ``relative_to_root`` the
        path starts with ``/`` and is relative to the markdown root (the form
        static site generators expect); otherwise the leading slash is left off.
        """
        relative = self.get_path_for_page(page, '').relative_to(self._require_root())
        link = relative.as_posix().replace('%20', '-').replace(' ', '-')

        if relative_to_root:
            return '/' + link
        return link

    def page_was_seen(self, page: NotionPage) -> None:
        """Record that ``page`` is written in this pull."""
        self._seen_files.add(self.get_path_for_page(page, MARKDOWN_EXTENSION).resolve())

    def cleanup_old_files(self) -> List[Path]:
        """
        Delete markdown files from before the pull whose page was not seen.

        Only files with the markdown extension are considered. Failures are
        logged and skipped.

        Returns:
            Files that were removed
        """
        removed: List[Path] = []

        for path in sorted(self._files_before_pull - self._seen_files):
            try:
                path.unlink()
                removed.append(path)
                self.logger.info(f"Removed old file {path}")
            except FileNotFoundError:
                self.logger.debug(f"Old file already gone: {path}")
            except OSError as e:
                self.logger.error(f"Could not remove old file {path}: {e}")

        if removed:
            self.logger.info(f"Removed {len(removed)} markdown files that no longer match a page")

        return removed

    def _require_root(self) -> Path:
        if self.root_directory is None:
            raise RuntimeError("set_root_directory() must be called before placing pages")
        return self.root_directory


class HierarchicalNamedLayoutStrategy(LayoutStrategy):
    """
    Mirrors the outline: every navigation level is a directory named after the
    level's title and every page file is named after the page.
    """

    def new_level(self, root_dir: Union[str, Path], context: str, level_name: str) -> str:
        new_context = f"{context}/{sanitize_name(level_name)}"

        level_dir = Path(root_dir) / new_context.lstrip('/')
        level_dir.mkdir(parents=True, exist_ok=True)
        self.logger.debug(f"Level '{level_name}' -> {level_dir}")

        return new_context

    def get_path_for_page(self, page: NotionPage, extension: str) -> Path:
        directory = self._require_root()
        context = page.context.strip('/')
        if context:
            directory = directory / context

        return directory / f"{sanitize_name(page.file_name())}{extension}"


__all__ = [
    'MARKDOWN_EXTENSION',
    'LayoutStrategy',
    'HierarchicalNamedLayoutStrategy',
    'sanitize_name'
]
