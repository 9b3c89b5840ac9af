"""Tests for rewriting links between pages."""

import logging

import pytest

from exporters.link_rewriter import LinkResolver, heading_anchor
from models import NotionPage, PageKind, strip_dashes
from notion_fakes import heading, make_id, paragraph


GUIDE_ID = make_id('guide', dashed=True)
START_ID = make_id('start', dashed=True)
SECTION_BLOCK_ID = make_id('section-block', dashed=True)
PARAGRAPH_BLOCK_ID = make_id('paragraph-block', dashed=True)
MISSING_ID = make_id('missing')


@pytest.fixture
def pages():
    return [
        NotionPage(id=GUIDE_ID, context='/Guides', name_or_title='User Guide', kind=PageKind.SIMPLE_PAGE),
        NotionPage(id=START_ID, context='', name_or_title='Getting Started', kind=PageKind.DATABASE_PAGE,
                   status='Publish'),
    ]


@pytest.fixture
def resolver(pages, layout, fetcher):
    fetcher.blocks[strip_dashes(GUIDE_ID)] = [
        paragraph('Intro', block_id=PARAGRAPH_BLOCK_ID),
        heading(2, 'My Section', block_id=SECTION_BLOCK_ID),
    ]
    return LinkResolver(pages, layout, fetcher)


def warnings_in(caplog):
    return [r for r in caplog.records if r.levelno == logging.WARNING]


class TestLinkResolver:
    def test_link_to_known_page(self, resolver):
        markdown = f"See [the guide](/{strip_dashes(GUIDE_ID)}) for details."

        assert resolver.resolve_links(markdown) == "See [the guide](/Guides/User-Guide) for details."

    def test_dashed_target_without_slash(self, resolver):
        assert resolver.resolve_links(f"[guide]({GUIDE_ID})") == "[guide](/Guides/User-Guide)"

    def test_fragment_to_heading_becomes_anchor(self, resolver):
        markdown = f"[x]({strip_dashes(GUIDE_ID)}#{strip_dashes(SECTION_BLOCK_ID)})"

        assert resolver.resolve_links(markdown) == "[x](/Guides/User-Guide#my-section)"

    def test_fragment_to_non_heading_is_unresolved(self, resolver, caplog):
        markdown = f"[x](/{strip_dashes(GUIDE_ID)}#{strip_dashes(PARAGRAPH_BLOCK_ID)})"

        with caplog.at_level(logging.WARNING):
            assert resolver.resolve_links(markdown) == markdown
        assert len(warnings_in(caplog)) == 1

    def test_unknown_target_passes_through_with_one_warning(self, resolver, caplog):
        markdown = f"Before [gone](/{MISSING_ID}) after."

        with caplog.at_level(logging.WARNING):
            result = resolver.resolve_links(markdown)

        assert result == markdown
        warnings = warnings_in(caplog)
        assert len(warnings) == 1
        assert MISSING_ID in warnings[0].getMessage()

    def test_link_to_page_text_filled_with_title(self, resolver):
        markdown = f"[link_to_page]({START_ID})"

        assert resolver.resolve_links(markdown) == "[Getting Started](/Getting-Started)"

    def test_link_to_page_to_unknown_page_is_a_problem_link(self, resolver, caplog):
        with caplog.at_level(logging.WARNING):
            result = resolver.resolve_links(f"[link_to_page]({MISSING_ID})")

        assert result == f"[Problem Link]({MISSING_ID})"
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert resolver.stats['link_texts_missing'] == 1

    def test_images_and_external_links_untouched(self, resolver):
        markdown = (
            f"![diagram](/{strip_dashes(GUIDE_ID)})\n"
            "[site](https://example.com/page)\n"
        )

        assert resolver.resolve_links(markdown) == markdown
        assert resolver.stats['links_found'] == 0

    def test_several_links_on_one_line(self, resolver):
        markdown = f"[a](/{strip_dashes(GUIDE_ID)}) and [b](/{strip_dashes(START_ID)}) and [c](/{MISSING_ID})"

        assert resolver.resolve_links(markdown) == (
            f"[a](/Guides/User-Guide) and [b](/Getting-Started) and [c](/{MISSING_ID})"
        )

    def test_resolving_twice_changes_nothing(self, resolver):
        markdown = f"[link_to_page]({START_ID}) [x]({GUIDE_ID}#{strip_dashes(SECTION_BLOCK_ID)})"

        once = resolver.resolve_links(markdown)

        assert resolver.resolve_links(once) == once

    def test_hex_named_root_page_link_is_not_resolved_again(self, pages, layout, fetcher, caplog):
        release_id = make_id('release', dashed=True)
        hex_title = make_id('release-notes-title')
        resolver = LinkResolver(
            pages + [NotionPage(id=release_id, context='', name_or_title=hex_title, kind=PageKind.SIMPLE_PAGE)],
            layout,
            fetcher
        )

        once = resolver.resolve_links(f"[Release notes]({release_id})")
        assert once == f"[Release notes](/{hex_title})"

        with caplog.at_level(logging.WARNING):
            assert resolver.resolve_links(once) == once
        assert warnings_in(caplog) == []
        assert resolver.stats['links_unresolved'] == 0

    def test_text_without_links_is_identical(self, resolver):
        markdown = "# Title\n\nNo links here, only [brackets] and (parens).\n"

        assert resolver.resolve_links(markdown) == markdown


def test_heading_anchor():
    assert heading_anchor('My Section') == 'my-section'
    assert heading_anchor('Install on Linux') == 'install-on-linux'
