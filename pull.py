#!/usr/bin/env python3
"""
Notion to Markdown Pull Tool - Main CLI Entry Point

This script provides the command-line interface for pulling a documentation
outline from Notion into a tree of Markdown files, with links between pages
rewritten to point at the generated files.
"""

import argparse
import logging
import sys
from typing import List

from config_loader import ConfigLoader, get_nested
from logger import setup_logging, log_section, log_config
from models import NotionPage
from notion_api_client import NotionApiError
from fetchers import FetcherError
from orchestrator import PullContext, PullOrchestrator

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Pull a documentation outline from Notion into Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Pull using the settings in config.yaml
  notion-pull --config config.yaml

  # Override the root outline page and output directory
  notion-pull --root-page 4a6de8c0b90b444b8a7bd534d6ec71a4 --output ./docs

  # Include database pages regardless of their status
  notion-pull --status-tag "*"

  # Dry-run mode (list discovered pages only)
  notion-pull --dry-run

  # Verbose logging
  notion-pull -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml)'
    )

    parser.add_argument(
        '--notion-token',
        type=str,
        help='Notion integration token (overrides config)'
    )

    parser.add_argument(
        '--root-page',
        type=str,
        help='Id of the root outline page (overrides config)'
    )

    parser.add_argument(
        '--output',
        dest='output_dir',
        type=str,
        help='Markdown output directory (overrides config)'
    )

    parser.add_argument(
        '--image-output',
        dest='image_dir',
        type=str,
        help='Directory for downloaded images (default: next to each page)'
    )

    parser.add_argument(
        '--image-prefix',
        type=str,
        help='Path prefix used for images in the markdown'
    )

    parser.add_argument(
        '--status-tag',
        type=str,
        help='Only database pages with this status are written; "*" writes all'
    )

    parser.add_argument(
        '--dry-run',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Discover pages and print where they would be written; creates the output '
             'directories but writes and removes no markdown or images'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def run_pull(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the complete pull pipeline."""
    logger.info("Starting pull pipeline")

    # Dry-run: use args.dry_run if provided, fall back to config, default to False
    dry_run = args.dry_run if args.dry_run is not None else get_nested(config, 'pull.dry_run', False)

    logger.info(
        f"Root page: {config['pull']['root_page']}, Output: {config['export']['markdown_output_path']}, "
        f"Dry-run: {dry_run}"
    )

    try:
        context = PullContext.from_config(config)
        orchestrator = PullOrchestrator(context)

        if dry_run:
            logger.info("Dry-run mode: displaying discovered pages")
            pages = orchestrator.preview()
            _print_page_preview(pages, context)
            logger.info("Dry-run complete. No markdown written.")
            return 0

        stats = orchestrator.orchestrate_pull()
        _print_summary(stats)

        logger.info("Pull completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.error("Pull interrupted by user")
        return 130
    except (NotionApiError, FetcherError) as e:
        logger.error(f"Could not read from Notion: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not write output: {e}")
        return 1
    except Exception as e:
        logger.error(f"Pull failed: {str(e)}", exc_info=True)
        return 1


def _print_page_preview(pages: List[NotionPage], context: PullContext) -> None:
    """Print the discovered page list and target files."""
    print("\n" + "=" * 60)
    print("PULL PREVIEW (DRY RUN)")
    print("=" * 60)
    print(f"\nPages discovered: {len(pages)}")

    print("\nPages:")
    print("-" * 60)
    for page in pages:
        link = context.layout_strategy.get_link_path_for_page(page)
        status = f" [{page.status}]" if page.status else ""
        print(f"  {page.context or '/'}  {page.name_or_title} ({page.kind.value}){status} -> {link}")

    print("\n" + "=" * 60)


def _print_summary(stats: dict) -> None:
    """Print the per-phase statistics of a finished pull."""
    discovery = stats.get('discovery', {})
    render = stats.get('render', {})
    cleanup = stats.get('cleanup', {})

    print("\n" + "=" * 60)
    print("PULL SUMMARY")
    print("=" * 60)
    print(f"Pages discovered: {discovery.get('pages', 0)}")
    print(f"Pages written: {render.get('pages_written', 0)}")
    print(f"Pages skipped by status: {render.get('pages_skipped_status', 0)}")
    print(f"Structural conflicts skipped: {discovery.get('conflicts_skipped', 0)}")
    print(f"Links rewritten: {render.get('links_rewritten', 0)}")
    print(f"Links unresolved: {render.get('links_unresolved', 0)}")
    print(f"Old files removed: {cleanup.get('files_removed', 0)}")
    print(f"Old images removed: {cleanup.get('images_removed', 0)}")
    print(f"Duration: {stats.get('duration', 0.0):.2f}s")
    print("=" * 60)


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        # Setup minimal logging for config loading
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('notion_docs_puller.cli')

        log_section("Notion to Markdown Pull Tool")
        logger.info(f"Version: {__version__}")

        # Load configuration
        logger.info(f"Loading configuration from {args.config}")
        config = ConfigLoader.load(args.config)

        # Merge with CLI arguments (CLI takes precedence)
        config = ConfigLoader.merge_with_args(config, args)

        # Validate configuration (raises ValueError)
        ConfigLoader.validate(config)

        # Reconfigure logging with config file settings
        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        logger = logging.getLogger('notion_docs_puller.cli')

        # Log sanitized configuration
        log_config(config)

        return run_pull(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nPull interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
