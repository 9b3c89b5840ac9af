"""Data models for the Notion to Markdown pull pipeline."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Title of an outline page that never becomes a directory level of its own
ROOT_OUTLINE_TITLE = "Outline"


class PageKind(Enum):
    """How a page was located in the workspace."""
    OUTLINE_PAGE = "outline_page"
    DATABASE_PAGE = "database_page"
    SIMPLE_PAGE = "simple_page"


class NodeRole(Enum):
    """Role an outline node plays once its children have been classified."""
    CONFLICT = "conflict"
    CONTENT = "content"
    NAVIGATION = "navigation"
    EMPTY = "empty"


def strip_dashes(page_id: str) -> str:
    """Dash-free, lower-case form of a Notion identifier."""
    return page_id.replace('-', '').lower()


_HEX_ID_PATTERN = re.compile(
    r'(?<![0-9a-fA-F])'
    r'([0-9a-fA-F]{32}|[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})'
    r'(?![0-9a-fA-F])'
)


def normalize_id(page_id: str) -> str:
    """
    Normalize a Notion identifier (dashed, dash-free or embedded in a URL)
    to the dashed 8-4-4-4-12 form used by the API.

    Raises:
        ValueError: If no 32 character identifier can be found
    """
    match = _HEX_ID_PATTERN.search(page_id)
    if not match:
        raise ValueError(f"Could not find a 32 character Notion id in '{page_id}'")
    raw = match.group(1).replace('-', '').lower()
    return f"{raw[0:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:32]}"


@dataclass(frozen=True)
class NotionPage:
    """A Notion page together with the output context assigned during discovery."""

    id: str
    context: str
    name_or_title: str
    kind: PageKind
    status: Optional[str] = None
    slug: Optional[str] = None
    keywords: Optional[str] = None

    @classmethod
    def from_api(
        cls,
        context: str,
        data: Dict[str, Any],
        located_as: PageKind = PageKind.OUTLINE_PAGE
    ) -> 'NotionPage':
        """
        Build a page from a Notion ``pages`` API response.

        Pages whose parent is a database are always database pages; otherwise
        the page keeps the kind it was located as.

        Args:
            context: Output context the page lives under
            data: Raw page object from the API
            located_as: Kind to use for pages that are not database rows

        Returns:
            NotionPage instance
        """
        parent_type = (data.get('parent') or {}).get('type')
        kind = PageKind.DATABASE_PAGE if parent_type == 'database_id' else located_as
        properties = data.get('properties') or {}

        status = None
        if kind == PageKind.DATABASE_PAGE:
            status = _select_property(properties, 'Status')

        return cls(
            id=data['id'],
            context=context,
            name_or_title=_title_property(properties),
            kind=kind,
            status=status,
            slug=_text_property(properties, 'Slug') or None,
            keywords=_text_property(properties, 'Keywords') or None
        )

    @property
    def key(self) -> Tuple[PageKind, str]:
        """Identity of the page within the discovered page list."""
        return (self.kind, strip_dashes(self.id))

    def matches_link_id(self, candidate: str) -> bool:
        """Compare against a link identifier, ignoring dashes and case."""
        return bool(candidate) and strip_dashes(candidate) == strip_dashes(self.id)

    def file_name(self) -> str:
        """Base name used for the page's output file."""
        return self.slug or self.name_or_title


@dataclass
class ContentInfo:
    """Classification of one page's child blocks."""

    has_paragraphs: bool = False
    child_pages: List[str] = field(default_factory=list)
    links_pages: List[str] = field(default_factory=list)


@dataclass
class ParsedLink:
    """An internal link found in rendered markdown."""

    display_text: str
    href: str  # target as written, possibly with a leading slash
    span: Tuple[int, int]

    @property
    def raw_target(self) -> str:
        return self.href[1:] if self.href.startswith('/') else self.href

    @property
    def page_id(self) -> str:
        return self.raw_target.split('#', 1)[0]

    @property
    def fragment(self) -> Optional[str]:
        if '#' not in self.raw_target:
            return None
        return self.raw_target.split('#', 1)[1]


def plain_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    """Concatenate the plain text of a Notion rich text array."""
    if not rich_text:
        return ""
    return "".join(part.get('plain_text', '') for part in rich_text)


def _title_property(properties: Dict[str, Any]) -> str:
    # Database rows name their title column "Name"; plain pages use "title".
    for name in ('Name', 'title'):
        prop = properties.get(name)
        if prop and prop.get('type') == 'title':
            return plain_text(prop.get('title'))
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get('type') == 'title':
            return plain_text(prop.get('title'))
    return ""


def _text_property(properties: Dict[str, Any], name: str) -> str:
    prop = properties.get(name)
    if not prop:
        return ""
    return plain_text(prop.get(prop.get('type', 'rich_text')))


def _select_property(properties: Dict[str, Any], name: str) -> Optional[str]:
    prop = properties.get(name)
    if not prop:
        return None
    # Notion's dedicated "status" property type has the same shape as a select
    value = prop.get(prop.get('type', 'select'))
    if isinstance(value, dict):
        return value.get('name')
    return None


__all__ = [
    'ROOT_OUTLINE_TITLE',
    'PageKind',
    'NodeRole',
    'NotionPage',
    'ContentInfo',
    'ParsedLink',
    'plain_text',
    'strip_dashes',
    'normalize_id'
]
