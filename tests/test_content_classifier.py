"""Tests for outline node classification."""

import itertools
import unittest

from fetchers.content_classifier import classify_blocks, classify_node
from models import ContentInfo, NodeRole
from notion_fakes import block, child_page, heading, link_to_page, make_id, paragraph


class TestClassifyBlocks(unittest.TestCase):
    def test_text_paragraph_counts_as_content(self):
        info = classify_blocks([paragraph('Some text')])
        self.assertTrue(info.has_paragraphs)

    def test_empty_paragraph_is_not_content(self):
        """Notion leaves empty paragraphs behind on navigation pages."""
        info = classify_blocks([paragraph(''), heading(1, 'Title only')])
        self.assertFalse(info.has_paragraphs)

    def test_child_pages_and_links_keep_block_order(self):
        a, b, c = make_id('a', dashed=True), make_id('b', dashed=True), make_id('c', dashed=True)
        info = classify_blocks([child_page(b), link_to_page(c), child_page(a), link_to_page(a)])

        self.assertEqual(info.child_pages, [b, a])
        self.assertEqual(info.links_pages, [c, a])

    def test_database_links_are_ignored(self):
        database_link = block('link_to_page', {'type': 'database_id', 'database_id': make_id('db')})
        info = classify_blocks([database_link])
        self.assertEqual(info.links_pages, [])


class TestClassifyNode(unittest.TestCase):
    def _info(self, has_paragraphs, has_children, has_links):
        return ContentInfo(
            has_paragraphs=has_paragraphs,
            child_pages=[make_id('child')] if has_children else [],
            links_pages=[make_id('link')] if has_links else []
        )

    def test_paragraphs_with_child_pages_conflict(self):
        self.assertEqual(classify_node(self._info(True, True, False), is_root=False), NodeRole.CONFLICT)
        self.assertEqual(classify_node(self._info(True, True, True), is_root=False), NodeRole.CONFLICT)

    def test_paragraphs_without_child_pages_are_content(self):
        self.assertEqual(classify_node(self._info(True, False, False), is_root=False), NodeRole.CONTENT)
        self.assertEqual(classify_node(self._info(True, False, True), is_root=False), NodeRole.CONTENT)

    def test_children_or_links_without_text_navigate(self):
        self.assertEqual(classify_node(self._info(False, True, False), is_root=False), NodeRole.NAVIGATION)
        self.assertEqual(classify_node(self._info(False, False, True), is_root=False), NodeRole.NAVIGATION)

    def test_nothing_at_all_is_empty(self):
        self.assertEqual(classify_node(self._info(False, False, False), is_root=False), NodeRole.EMPTY)

    def test_root_is_never_content_or_conflict(self):
        for has_paragraphs, has_children, has_links in itertools.product([True, False], repeat=3):
            role = classify_node(self._info(has_paragraphs, has_children, has_links), is_root=True)
            self.assertNotIn(role, (NodeRole.CONTENT, NodeRole.CONFLICT))
            expected = NodeRole.NAVIGATION if (has_children or has_links) else NodeRole.EMPTY
            self.assertEqual(role, expected)

    def test_every_combination_has_exactly_one_role(self):
        for has_paragraphs, has_children, has_links, is_root in itertools.product([True, False], repeat=4):
            role = classify_node(self._info(has_paragraphs, has_children, has_links), is_root=is_root)
            self.assertIsInstance(role, NodeRole)


if __name__ == '__main__':
    unittest.main()
