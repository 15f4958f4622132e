"""Command-line interface for romsync."""

import sys
import logging
import argparse
import asyncio
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

logger = logging.getLogger(__name__)

from romsync import __version__
from romsync.config.layout import DirectoryLayout
from romsync.config.loader import load_config, ConfigError
from romsync.config.platforms import CatalogError, PlatformCatalog, load_catalog
from romsync.config.validator import validate_config, ValidationError
from romsync.ingestion.batch_processor import BatchProcessor, BatchResult
from romsync.ingestion.batch_queue import BatchJob, BatchQueue
from romsync.ingestion.batch_validator import BatchPolicy, validate_batch
from romsync.ingestion.scheduler import BatchScheduler
from romsync.pipeline.errors import InvalidInputError
from romsync.pipeline.hash_calculator import format_file_size
from romsync.pipeline.orchestrator import PipelineOrchestrator
from romsync.storage.locks import PathLockRegistry

STRATEGY_SERIAL = 'serial'
STRATEGY_PARALLEL = 'parallel'


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='romsync',
        description='ROM ingestion into an archive and emulator-frontend sync tree',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hard-link an entire collection into the archive and downloads trees
  romsync bulk /mnt/roms

  # Skip content hashing for a quick first pass
  romsync bulk /mnt/roms --no-hash

  # Run individual files through the full pipeline
  romsync ingest "Super Mario Bros.nes" "Sonic.md"

  # List recognized platforms
  romsync platforms

  # Use custom config file
  romsync --config /path/to/config.yaml bulk /mnt/roms
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='PATH',
        help='Path to config.yaml (default: ./config.yaml)'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    bulk = subparsers.add_parser('bulk', help='Process a directory tree (or one file) in parallel')
    bulk.add_argument('path', type=Path, metavar='PATH', help='Directory root or single ROM file')
    bulk.add_argument(
        '--no-hash',
        action='store_true',
        help='Do not compute content hashes. Overrides config.'
    )

    ingest = subparsers.add_parser('ingest', help='Run files through the ingestion pipeline')
    ingest.add_argument('files', nargs='+', type=Path, metavar='FILE', help='ROM files to ingest')
    ingest.add_argument(
        '--strategy',
        choices=[STRATEGY_SERIAL, STRATEGY_PARALLEL],
        help='serial (queued pipeline) or parallel (bulk processor). Overrides config.'
    )

    subparsers.add_parser('platforms', help='List recognized platforms and extensions')

    return parser


def _setup_logging(config: dict) -> None:
    """
    Setup logging configuration from config.

    Args:
        config: Configuration dictionary
    """
    logging_config = config.get('logging', {})

    level_str = str(logging_config.get('level', 'INFO')).upper()
    level = getattr(logging, level_str, logging.INFO)

    handlers = []

    if logging_config.get('console', True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        handlers.append(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Error: Could not create log file '{log_file}': {e}", file=sys.stderr)
            sys.exit(1)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for romsync CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        validate_config(config)
        catalog = load_catalog(config)
    except (ConfigError, ValidationError, CatalogError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config)

    if args.command == 'bulk' and args.no_hash:
        config['batch']['compute_hashes'] = False
    if args.command == 'ingest' and args.strategy:
        config['batch']['processing_strategy'] = args.strategy

    console = Console()

    try:
        if args.command == 'platforms':
            _print_platforms(console, catalog)
            return 0
        if args.command == 'bulk':
            return asyncio.run(run_bulk(config, catalog, args.path, console))
        return asyncio.run(run_ingest(config, catalog, args.files, console))
    except KeyboardInterrupt:
        print("\n\nIngestion interrupted by user.", file=sys.stderr)
        return 130
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def run_bulk(config: dict, catalog: PlatformCatalog, path: Path, console: Console) -> int:
    """Run the bulk processor over a directory tree."""
    layout = DirectoryLayout.from_config(config)
    layout.ensure()

    processor = BatchProcessor(catalog, layout, config, locks=PathLockRegistry())
    result = await processor.process_directory(path)

    _print_batch_result(console, result)
    return 0 if not result.errors else 1


async def run_ingest(config: dict, catalog: PlatformCatalog, files: List[Path], console: Console) -> int:
    """
    Ingest explicit files.

    Files are checked against the upload policy first, then routed through
    the serial queue or the bulk processor according to
    batch.processing_strategy.
    """
    batch_files = []
    for path in files:
        try:
            size = path.stat().st_size
        except OSError as e:
            print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
            return 1
        batch_files.append({'filename': path.name, 'path': str(path.resolve()), 'size': size})

    validation = validate_batch(batch_files, BatchPolicy.from_config(config, catalog))
    if not validation.valid:
        print(f"Error: {validation.error}", file=sys.stderr)
        return 1

    layout = DirectoryLayout.from_config(config)
    layout.ensure()
    # Both regimes must serialize on the same manifest and playlist files
    locks = PathLockRegistry()

    strategy = config.get('batch', {}).get('processing_strategy', STRATEGY_SERIAL)
    if strategy == STRATEGY_PARALLEL:
        processor = BatchProcessor(catalog, layout, config, locks=locks)
        result = await processor.process_files([f['path'] for f in batch_files])
        _print_batch_result(console, result)
        return 0 if not result.errors else 1

    orchestrator = PipelineOrchestrator.from_config(config, catalog=catalog, layout=layout, locks=locks)
    queue = BatchQueue()
    scheduler = BatchScheduler(queue, orchestrator, config)

    job = queue.create_job(batch_files)
    while await scheduler.run_once() is not None:
        pass

    _print_job(console, job)
    return 0 if not job.errors else 1


def _print_platforms(console: Console, catalog: PlatformCatalog) -> None:
    table = Table(title="Platforms", box=box.ROUNDED)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Extensions")
    table.add_column("BIOS")

    for platform in catalog:
        table.add_row(
            platform.id,
            platform.name,
            ' '.join(platform.extensions),
            ', '.join(platform.bios_files) if platform.requires_bios else '-',
        )
    console.print(table)


def _print_batch_result(console: Console, result: BatchResult) -> None:
    table = Table(title="Bulk ingestion", box=box.ROUNDED)
    table.add_column("Platform", style="bold")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    sizes = {}
    for processed in result.files:
        sizes[processed.platform] = sizes.get(processed.platform, 0) + processed.size
    for platform_id, count in sorted(result.by_platform.items()):
        table.add_row(platform_id, str(count), format_file_size(sizes.get(platform_id, 0)))

    console.print(table)
    console.print(
        f"Total {result.total}  processed [green]{result.processed}[/green]  "
        f"failed [red]{result.failed}[/red]  skipped {result.skipped}  "
        f"in {result.duration:.2f}s"
    )
    if result.cancelled:
        console.print("[yellow]Run was cancelled before all files started[/yellow]")
    for error in result.errors:
        console.print(f"  [red]✗[/red] {escape(error['file'])}: {escape(error['error'])}")


def _print_job(console: Console, job: BatchJob) -> None:
    summary = job.to_dict()
    table = Table(title=f"Batch {summary['id']}", box=box.ROUNDED)
    table.add_column("Status", style="bold")
    table.add_column("Processed", justify="right")
    table.add_column("Errors", justify="right")
    table.add_row(
        summary['status'],
        f"{summary['progress']['processed']}/{summary['progress']['total']}",
        str(len(summary['errors'])),
    )
    console.print(table)
    for error in summary['errors']:
        console.print(f"  [red]✗[/red] {escape(error)}")


if __name__ == '__main__':
    sys.exit(main())
