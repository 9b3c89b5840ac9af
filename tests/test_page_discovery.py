"""Tests for outline discovery."""

import logging

import pytest

from fetchers.page_discovery import PageGraphDiscovery
from models import PageKind
from notion_fakes import child_page, link_to_page, make_id, paragraph


ROOT = make_id('root', dashed=True)


def discover(fetcher, layout):
    discovery = PageGraphDiscovery(fetcher, layout, str(layout.root_directory))
    return discovery, discovery.discover(ROOT)


@pytest.fixture
def outline(fetcher):
    """Outline root with A (content) and B (level containing C and D)."""
    a, b, c, d = (make_id(name, dashed=True) for name in 'ABCD')
    fetcher.add_page(ROOT, 'Outline', [child_page(a), child_page(b)])
    fetcher.add_page(a, 'A', [paragraph('About A')])
    fetcher.add_page(b, 'B', [child_page(c), child_page(d)])
    fetcher.add_page(c, 'C', [paragraph('About C')])
    fetcher.add_page(d, 'D', [paragraph('About D')])
    return fetcher


class TestDiscovery:
    def test_levels_and_content_pages_in_outline_order(self, outline, layout):
        _, pages = discover(outline, layout)

        assert [p.name_or_title for p in pages] == ['A', 'C', 'D']
        assert [p.context for p in pages] == ['', '/B', '/B']
        assert all(p.kind == PageKind.SIMPLE_PAGE for p in pages)
        assert (layout.root_directory / 'B').is_dir()

    def test_discovery_is_deterministic(self, outline, layout):
        _, first = discover(outline, layout)
        _, second = discover(outline, layout)

        assert first == second

    def test_conflicting_page_skipped_with_its_subtree(self, fetcher, layout, caplog):
        mixed, nested = make_id('mixed', dashed=True), make_id('nested', dashed=True)
        fetcher.add_page(ROOT, 'Outline', [child_page(mixed)])
        fetcher.add_page(mixed, 'Mixed', [paragraph('Text'), child_page(nested)])
        fetcher.add_page(nested, 'Nested', [paragraph('Never reached')])

        with caplog.at_level(logging.ERROR):
            discovery, pages = discover(fetcher, layout)

        assert pages == []
        assert nested not in fetcher.page_requests
        assert discovery.stats['conflicts_skipped'] == 1
        assert any('Mixed' in r.getMessage() for r in caplog.records if r.levelno == logging.ERROR)

    def test_empty_page_skipped_with_warning(self, fetcher, layout, caplog):
        empty = make_id('empty', dashed=True)
        fetcher.add_page(ROOT, 'Outline', [child_page(empty)])
        fetcher.add_page(empty, 'Empty', [paragraph('')])

        with caplog.at_level(logging.WARNING):
            discovery, pages = discover(fetcher, layout)

        assert pages == []
        assert discovery.stats['empty_pages_skipped'] == 1
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert 'Empty' in warnings[0].getMessage()

    def test_linked_pages_follow_child_subtrees(self, fetcher, layout):
        nav, sub, inner, linked = (make_id(n, dashed=True) for n in ('nav', 'sub', 'inner', 'linked'))
        fetcher.add_page(ROOT, 'Outline', [child_page(nav)])
        # The link block comes first in Notion but is emitted after the child levels
        fetcher.add_page(nav, 'Guides', [link_to_page(linked), child_page(sub)])
        fetcher.add_page(sub, 'Advanced', [child_page(inner)])
        fetcher.add_page(inner, 'Inner', [paragraph('Deep')])
        fetcher.add_page(linked, 'Linked', database=True, status='Publish')

        _, pages = discover(fetcher, layout)

        assert [(p.name_or_title, p.context) for p in pages] == [
            ('Inner', '/Guides/Advanced'),
            ('Linked', '/Guides'),
        ]
        assert pages[1].kind == PageKind.DATABASE_PAGE
        assert pages[1].status == 'Publish'

    def test_nested_outline_title_adds_no_level(self, fetcher, layout):
        inner_outline, content = make_id('inner-outline', dashed=True), make_id('content', dashed=True)
        fetcher.add_page(ROOT, 'Docs Root', [child_page(inner_outline)])
        fetcher.add_page(inner_outline, 'Outline', [child_page(content)])
        fetcher.add_page(content, 'Intro', [paragraph('Hello')])

        _, pages = discover(fetcher, layout)

        assert [(p.name_or_title, p.context) for p in pages] == [('Intro', '')]
        assert not (layout.root_directory / 'Outline').exists()

    def test_root_with_text_still_navigates(self, fetcher, layout):
        linked = make_id('linked', dashed=True)
        fetcher.add_page(ROOT, 'Outline', [paragraph('Intro text on the root'), link_to_page(linked)])
        fetcher.add_page(linked, 'Getting Started', database=True, status='Publish')

        _, pages = discover(fetcher, layout)

        assert [p.name_or_title for p in pages] == ['Getting Started']
        assert pages[0].context == ''

    def test_page_linked_twice_is_listed_once(self, fetcher, layout, caplog):
        linked = make_id('linked', dashed=True)
        fetcher.add_page(ROOT, 'Outline', [link_to_page(linked), link_to_page(linked.replace('-', ''))])
        fetcher.add_page(linked, 'Shared', database=True, status='Publish')

        with caplog.at_level(logging.WARNING):
            discovery, pages = discover(fetcher, layout)

        assert len(pages) == 1
        assert discovery.stats['duplicates_skipped'] == 1
        assert any('more than once' in r.getMessage() for r in caplog.records)

    def test_content_page_that_links_pages_is_content(self, fetcher, layout, caplog):
        page, linked = make_id('page', dashed=True), make_id('linked', dashed=True)
        fetcher.add_page(ROOT, 'Outline', [child_page(page)])
        fetcher.add_page(page, 'Overview', [paragraph('See also'), link_to_page(linked)])
        fetcher.add_page(linked, 'Elsewhere', database=True, status='Publish')

        with caplog.at_level(logging.WARNING):
            _, pages = discover(fetcher, layout)

        assert [p.name_or_title for p in pages] == ['Overview']
        assert linked not in fetcher.page_requests
        assert any('simple content page' in r.getMessage() for r in caplog.records)
