"""Command-line interface for romshelf."""

import sys
import signal
import logging
import argparse
import asyncio
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

from romshelf import __version__
from romshelf.config.consoles import ConsolesError
from romshelf.config.loader import load_config, ConfigError
from romshelf.config.validator import validate_config, ValidationError
from romshelf.providers.errors import AuthFailedError
from romshelf.providers.http_client import create_client
from romshelf.providers.registry import build_providers, ProviderConfigError
from romshelf.scanner.rom_scanner import ScannerError
from romshelf.ui.console_ui import ConsoleUI, print_recent_results
from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent
from romshelf.ui.headless_logger import HeadlessLogger
from romshelf.workflow.backoff import BackoffRegistry
from romshelf.workflow.completion_cache import CompletionCache
from romshelf.workflow.options import ScrapeOptions
from romshelf.workflow.orchestrator import SessionOrchestrator, OrchestratorError
from romshelf.workflow.session_state import SessionStateRecorder, load_state, STATE_FILENAME
from romshelf.workflow.storage import data_dir_for


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='romshelf',
        description='Scrape box art, metadata and guides for a ROM collection',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape the ROM root from config.yaml
  romshelf

  # Scrape a different ROM root
  romshelf --roms /mnt/sdcard/Roms

  # Re-scrape everything, ignoring existing images and cache markers
  romshelf --refresh

  # Metadata from TheGamesDB only, no guides
  romshelf --metadata-providers thegamesdb --guide-providers

  # Show the last session's state and recent results
  romshelf --status
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

    parser.add_argument(
        '--roms',
        type=Path,
        metavar='PATH',
        help='ROM root directory. Overrides config.'
    )

    parser.add_argument(
        '--refresh',
        action='store_true',
        help='Ignore existing images, guides and not-found markers; clear stored results first.'
    )

    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Delete the completion cache and stored results before scraping.'
    )

    parser.add_argument(
        '--metadata-providers',
        nargs='*',
        metavar='PROVIDER',
        help='Metadata providers in priority order (screenscraper, thegamesdb). Overrides config.'
    )

    parser.add_argument(
        '--guide-providers',
        nargs='*',
        metavar='PROVIDER',
        help='Guide providers in priority order (gamefaqs). Overrides config.'
    )

    parser.add_argument(
        '--ui',
        choices=['rich', 'headless'],
        help='UI mode: rich (live progress, default) or headless (plain logging for CI/automation)'
    )

    parser.add_argument(
        '--status',
        action='store_true',
        help="Show the last session's state and recent results, then exit."
    )

    return parser


def _setup_logging(config: dict, rich_console: Optional[Console] = None) -> None:
    """
    Setup logging configuration from config.

    Args:
        config: Configuration dictionary
        rich_console: Console of the live UI; log records are rendered
            above the live display when given
    """
    logging_config = config.get('logging', {})

    level_str = logging_config.get('level', 'INFO').upper()
    level = getattr(logging, level_str, logging.INFO)

    handlers = []

    if logging_config.get('console', True):
        if rich_console is not None:
            console_handler = RichHandler(
                console=rich_console,
                show_path=False,
                markup=False,
                rich_tracebacks=True
            )
            console_handler.setFormatter(logging.Formatter('%(message)s'))
        else:
            # Simple format for headless CI/automation
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        console_handler.setLevel(level)
        handlers.append(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        try:
            log_path = Path(log_file).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
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

    # httpx logs full URLs at DEBUG level, which would expose API credentials
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    # Pillow's chunk parser is noisy at DEBUG
    logging.getLogger('PIL').setLevel(logging.INFO)


def _apply_overrides(config: dict, args: argparse.Namespace) -> None:
    """Apply command-line overrides to the loaded configuration."""
    if args.roms is not None:
        config['paths']['roms'] = str(args.roms)

    if args.refresh:
        config['scraping']['refresh'] = True

    if args.metadata_providers is not None:
        config['scraping']['metadata_providers'] = args.metadata_providers

    if args.guide_providers is not None:
        config['scraping']['guide_providers'] = args.guide_providers

    if args.ui:
        config['runtime']['ui'] = args.ui


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for romshelf CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        _apply_overrides(config, args)
        validate_config(config)
    except (ConfigError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config)

    if args.status:
        return show_status(config)

    try:
        return asyncio.run(run_scraper(config, args))
    except KeyboardInterrupt:
        print("\n\nScraping interrupted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1


def show_status(config: dict, console: Optional[Console] = None) -> int:
    """
    Print the last session's saved state and recent results.

    Returns:
        Exit code
    """
    console = console or Console()
    options = ScrapeOptions.from_config(config)
    data_dir = data_dir_for(options.roms_path)

    state = load_state(data_dir / STATE_FILENAME)
    cache = CompletionCache(data_dir / "cache")
    progress = cache.load_progress()
    results = cache.load_results()

    if state is None and progress is None and not results:
        console.print(f"No previous session found in {data_dir}")
        return 0

    if state is not None:
        console.print(f"[bold]Last session:[/bold] {state.current_message}")
        console.print(
            f"  {state.progress}/{state.total_games} processed - "
            f"{state.success_count} ok, {state.skip_count} skipped, {state.fail_count} failed"
        )
    if progress is not None and progress.completed < progress.total:
        console.print(
            f"  [yellow]Interrupted after {progress.completed} of {progress.total} ROMs[/yellow]"
        )
    if results:
        print_recent_results(console, results)

    return 0


def _install_signal_handlers(cancel_event: asyncio.Event) -> None:
    """Turn the first SIGINT/SIGTERM into a graceful stop request."""
    loop = asyncio.get_running_loop()

    def _request_cancel(sig: signal.Signals) -> None:
        logger.warning("Stopping after the current ROM (press Ctrl-C again to abort)")
        cancel_event.set()
        # A second signal falls through to the default handler
        loop.remove_signal_handler(sig)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_cancel, sig)
        except NotImplementedError:
            logger.debug(f"Signal handlers not supported on this platform ({sig.name})")


async def run_scraper(config: dict, args: argparse.Namespace) -> int:
    """
    Run a scraping session (async).

    Args:
        config: Loaded configuration
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    options = ScrapeOptions.from_config(config)
    data_dir = data_dir_for(options.roms_path)

    event_bus = EventBus(max_queue_size=config.get('events', {}).get('queue_size', 100))

    recorder = SessionStateRecorder(data_dir)
    event_bus.subscribe(ProgressEvent, recorder.handle_event)

    if config['runtime'].get('ui') == 'rich' and sys.stdout.isatty():
        ui = ConsoleUI(config)
        _setup_logging(config, rich_console=ui.console)
    else:
        ui = HeadlessLogger(config)
    ui.attach(event_bus)

    orchestrator = SessionOrchestrator(
        options,
        event_bus=event_bus,
        backoff_factory=lambda: BackoffRegistry.from_config(config),
    )
    if args.no_cache:
        logger.info("Clearing completion cache and stored results")
        orchestrator.reset_library()
        recorder.clear()

    cancel_event = asyncio.Event()
    _install_signal_handlers(cancel_event)

    client = create_client(config)
    metadata_providers, guide_providers = [], []
    bus_task = asyncio.create_task(event_bus.process_events())
    ui.start()

    try:
        metadata_providers, guide_providers = await build_providers(config, client)
        summary = await orchestrator.run(metadata_providers, guide_providers, cancel_event)
    except (AuthFailedError, ProviderConfigError, OrchestratorError, ScannerError, ConsolesError) as e:
        logger.error(str(e))
        return 1
    finally:
        await event_bus.stop()
        bus_task.cancel()
        ui.stop()
        for provider in [*metadata_providers, *guide_providers]:
            await provider.close()
        await client.aclose()

    ui.print_summary(summary)
    return 0
