"""Structural classification of outline pages from their child blocks."""

from typing import Any, Dict, Iterable

from models import ContentInfo, NodeRole


def classify_blocks(blocks: Iterable[Dict[str, Any]]) -> ContentInfo:
    """
    Summarize a page's child blocks.

    A page "has paragraphs" when at least one paragraph block carries text.
    Child pages are nested ``child_page`` blocks; page links are
    ``link_to_page`` blocks pointing at a page (database links are ignored).
    Both id lists keep the order the blocks arrive in.

    Args:
        blocks: Raw child blocks of the page

    Returns:
        ContentInfo for the page
    """
    info = ContentInfo()

    for block in blocks:
        block_type = block.get('type')

        if block_type == 'paragraph':
            if (block.get('paragraph') or {}).get('rich_text'):
                info.has_paragraphs = True
        elif block_type == 'child_page':
            info.child_pages.append(block['id'])
        elif block_type == 'link_to_page':
            target = block.get('link_to_page') or {}
            if target.get('type') == 'page_id':
                info.links_pages.append(target['page_id'])

    return info


def classify_node(info: ContentInfo, is_root: bool) -> NodeRole:
    """
    Decide which role an outline node plays. Exactly one role applies.

    The root is never content and never a conflict: it only ever forms the
    top navigation level or, with nothing to walk, is empty.

    Args:
        info: Classification of the node's children
        is_root: True for the outline root

    Returns:
        NodeRole
    """
    if not is_root and info.has_paragraphs:
        if info.child_pages:
            return NodeRole.CONFLICT
        return NodeRole.CONTENT

    if info.child_pages or info.links_pages:
        return NodeRole.NAVIGATION

    return NodeRole.EMPTY


__all__ = ['classify_blocks', 'classify_node']
