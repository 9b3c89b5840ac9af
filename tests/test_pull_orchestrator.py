"""End-to-end tests for a pull against the in-memory workspace."""

from unittest import mock

import pytest

import pull
from orchestrator import PullContext, PullOrchestrator
from notion_fakes import FakeFetcher, block, child_page, link_to_page, make_id, paragraph, rich


ROOT = make_id('root')
GUIDES = make_id('guides', dashed=True)
INTRO = make_id('intro', dashed=True)
START = make_id('start', dashed=True)
DRAFT = make_id('draft', dashed=True)


@pytest.fixture
def workspace():
    fetcher = FakeFetcher()
    fetcher.add_page(ROOT, 'Outline', [child_page(INTRO), child_page(GUIDES)])
    fetcher.add_page(INTRO, 'Introduction', [
        paragraph('Welcome to the docs.'),
        link_to_page(START),
    ])
    fetcher.add_page(GUIDES, 'User Guides', [link_to_page(START), link_to_page(DRAFT)])
    fetcher.add_page(START, 'Getting Started', [
        block('paragraph', {'rich_text': rich('Back to intro', href=f'/{INTRO.replace("-", "")}')}),
    ], database=True, status='Publish')
    fetcher.add_page(DRAFT, 'Upcoming', [paragraph('Soon')], database=True, status='Draft')
    return fetcher


def make_config(tmp_path):
    return {
        'notion': {'token': 'secret_test'},
        'pull': {'root_page': ROOT, 'status_tag': 'Publish'},
        'export': {'markdown_output_path': str(tmp_path / 'docs'), 'progress_bars': False},
    }


class TestPullOrchestrator:
    def test_full_pull(self, workspace, tmp_path):
        docs = tmp_path / 'docs'
        (docs / 'Old-Section').mkdir(parents=True)
        (docs / 'Old-Section' / 'Removed.md').write_text('stale', encoding='utf-8')

        context = PullContext.from_config(make_config(tmp_path), fetcher=workspace)
        stats = PullOrchestrator(context).orchestrate_pull()

        intro = (docs / 'Introduction.md').read_text(encoding='utf-8')
        assert intro == 'Welcome to the docs.\n\n[Getting Started](/User-Guides/Getting-Started)\n'

        start = (docs / 'User-Guides' / 'Getting-Started.md').read_text(encoding='utf-8')
        assert start == '[Back to intro](/Introduction)\n'

        assert not (docs / 'User-Guides' / 'Upcoming.md').exists()
        assert not (docs / 'Old-Section' / 'Removed.md').exists()

        assert stats['discovery']['pages'] == 3
        assert stats['render']['pages_written'] == 2
        assert stats['render']['pages_skipped_status'] == 1
        assert stats['cleanup']['files_removed'] == 1

    def test_second_pull_keeps_files(self, workspace, tmp_path):
        config = make_config(tmp_path)
        PullOrchestrator(PullContext.from_config(config, fetcher=workspace)).orchestrate_pull()

        stats = PullOrchestrator(PullContext.from_config(config, fetcher=workspace)).orchestrate_pull()

        assert stats['cleanup']['files_removed'] == 0
        assert (tmp_path / 'docs' / 'Introduction.md').exists()

    def test_preview_writes_no_markdown(self, workspace, tmp_path):
        context = PullContext.from_config(make_config(tmp_path), fetcher=workspace)

        pages = PullOrchestrator(context).preview()

        assert [(p.name_or_title, p.context) for p in pages] == [
            ('Introduction', ''),
            ('Getting Started', '/User-Guides'),
            ('Upcoming', '/User-Guides'),
        ]
        assert list((tmp_path / 'docs').rglob('*.md')) == []

    def test_root_page_given_as_url(self, workspace, tmp_path):
        config = make_config(tmp_path)
        config['pull']['root_page'] = f'https://www.notion.so/acme/Outline-{ROOT}?pvs=4'

        pages = PullOrchestrator(PullContext.from_config(config, fetcher=workspace)).preview()

        assert [p.name_or_title for p in pages] == ['Introduction', 'Getting Started', 'Upcoming']

    def test_stale_image_of_removed_page_is_pruned(self, workspace, tmp_path):
        stale = tmp_path / 'docs' / 'Old-Section' / '0123456789abcdef.png'
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b'old')

        context = PullContext.from_config(make_config(tmp_path), fetcher=workspace)
        stats = PullOrchestrator(context).orchestrate_pull()

        assert not stale.exists()
        assert stats['cleanup']['images_removed'] == 1


class TestCli:
    def _write_config(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text(
            "notion:\n"
            "  token: ${TEST_NOTION_TOKEN}\n"
            "pull:\n"
            f"  root_page: \"{ROOT}\"\n"
            "export:\n"
            f"  markdown_output_path: \"{tmp_path / 'docs'}\"\n"
            "  progress_bars: false\n",
            encoding='utf-8'
        )
        return config_file

    def test_dry_run(self, workspace, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv('TEST_NOTION_TOKEN', 'secret_test')
        config_file = self._write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['notion-pull', '--config', str(config_file), '--dry-run'])

        with mock.patch('orchestrator.pull_orchestrator.ApiFetcher', return_value=workspace):
            assert pull.main() == 0

        output = capsys.readouterr().out
        assert 'Pages discovered: 3' in output
        assert '/User-Guides/Getting-Started' in output

    def test_missing_config_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr('sys.argv', ['notion-pull', '--config', str(tmp_path / 'nope.yaml')])

        assert pull.main() == 2

    def test_missing_token_is_config_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv('TEST_NOTION_TOKEN', raising=False)
        config_file = self._write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['notion-pull', '--config', str(config_file)])

        assert pull.main() == 2

    def test_fetch_failure_exits_with_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv('TEST_NOTION_TOKEN', 'secret_test')
        config_file = self._write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['notion-pull', '--config', str(config_file)])

        # The root page is unknown to an empty workspace
        with mock.patch('orchestrator.pull_orchestrator.ApiFetcher', return_value=FakeFetcher()):
            assert pull.main() == 1

    def test_dry_run_creates_directories_but_no_markdown(self, workspace, tmp_path, monkeypatch):
        monkeypatch.setenv('TEST_NOTION_TOKEN', 'secret_test')
        config_file = self._write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['notion-pull', '--config', str(config_file), '--dry-run'])

        with mock.patch('orchestrator.pull_orchestrator.ApiFetcher', return_value=workspace):
            assert pull.main() == 0

        assert (tmp_path / 'docs' / 'User-Guides').is_dir()
        assert list((tmp_path / 'docs').rglob('*.md')) == []

        help_text = pull.create_argument_parser()._option_string_actions['--dry-run'].help
        assert 'creates the output directories' in help_text
