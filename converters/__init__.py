"""Converters package for rendering Notion block trees to Markdown."""

from .block_renderer import BlockRenderer, CustomTransformer, internal_link_target

__all__ = [
    'BlockRenderer',
    'CustomTransformer',
    'internal_link_target'
]
