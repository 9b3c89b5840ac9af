"""Shared fixtures."""

import logging

import pytest

from exporters.layout_strategy import HierarchicalNamedLayoutStrategy
from logger import LOGGER_NAME
from notion_fakes import FakeFetcher


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def layout(tmp_path):
    strategy = HierarchicalNamedLayoutStrategy()
    strategy.set_root_directory(tmp_path / 'docs')
    return strategy


@pytest.fixture
def docs_dir(layout):
    return layout.root_directory


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI configures the package logger; leave it as the next test expects."""
    yield
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
