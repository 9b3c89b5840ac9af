"""Exporters package for placing, rendering and writing pages as markdown files."""

from .layout_strategy import LayoutStrategy, HierarchicalNamedLayoutStrategy, sanitize_name
from .link_rewriter import LinkResolver, heading_anchor
from .image_handler import ImageHandler
from .markdown_exporter import MarkdownExporter

__all__ = [
    'LayoutStrategy',
    'HierarchicalNamedLayoutStrategy',
    'sanitize_name',
    'LinkResolver',
    'heading_anchor',
    'ImageHandler',
    'MarkdownExporter'
]
