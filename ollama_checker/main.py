"""
Command-line entry point for the health checker.
"""

import sys
import signal
import argparse
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ollama_checker import __version__
from ollama_checker.config import CheckerConfig, ConfigManager
from ollama_checker.concurrent.controller import HealthCheckController
from ollama_checker.services.exporter import ensure_writable, export_csv
from ollama_checker.services.reporter import ConsoleReporter
from ollama_checker.utils.errors import CheckerError, ConfigurationError
from ollama_checker.utils.logging import setup_logging, shutdown_logging, get_logger, get_business_logger
from ollama_checker.utils.url_loader import resolve_urls


logger = get_logger(__name__)


def create_cli_parser() -> argparse.ArgumentParser:
    """Create command-line interface parser."""
    parser = argparse.ArgumentParser(
        prog='ollama-checker',
        description='Concurrent health checker for Ollama /api/tags endpoints',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s http://10.0.0.5:11434 http://10.0.0.6:11434
  %(prog)s --file hosts.txt
  %(prog)s --file hosts.txt --deadline 30 --output alive.csv
        """
    )

    parser.add_argument(
        'urls',
        nargs='*',
        help='Endpoint base URLs (ignored when --file is given)'
    )

    parser.add_argument(
        '--file', '-f',
        type=str,
        help='File with one endpoint URL per line (# starts a comment)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to configuration file (default: checker.json if present)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='CSV export path (default: healthy_endpoints.csv)'
    )

    probe_group = parser.add_argument_group('probe options')
    probe_group.add_argument(
        '--timeout',
        type=float,
        help='Per-request timeout in seconds'
    )
    probe_group.add_argument(
        '--retries',
        type=int,
        help='Retries on transport errors'
    )
    probe_group.add_argument(
        '--strict',
        action='store_true',
        help='Require a non-empty digest for a model to count as valid'
    )

    run_group = parser.add_argument_group('run options')
    run_group.add_argument(
        '--workers',
        type=int,
        help='Use a fixed number of workers instead of sizing from the task count'
    )
    run_group.add_argument(
        '--deadline',
        type=float,
        help='Overall run deadline in seconds; unclaimed endpoints are abandoned'
    )
    run_group.add_argument(
        '--no-progress',
        action='store_true',
        help='Do not draw the progress line'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override log level from configuration'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging (equivalent to --log-level DEBUG)'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> CheckerConfig:
    """
    Load configuration and apply command-line overrides.

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    if args.config:
        if not Path(args.config).exists():
            raise ConfigurationError(f"Configuration file not found: {args.config}")
        manager = ConfigManager(args.config)
    else:
        manager = ConfigManager()

    def apply_overrides(config: CheckerConfig) -> None:
        if args.output:
            config.output.csv_path = args.output
        if args.timeout is not None:
            config.probe.request_timeout = args.timeout
        if args.retries is not None:
            config.probe.max_retries = args.retries
        if args.strict:
            config.probe.require_digest = True
        if args.workers is not None:
            config.pool.strategy = "fixed"
            config.pool.fixed_workers = args.workers
        if args.deadline is not None:
            config.run.deadline_seconds = args.deadline
        if args.no_progress:
            config.run.show_progress = False
        if args.verbose:
            config.log_level = "DEBUG"
        elif args.log_level:
            config.log_level = args.log_level

    return manager.update(apply_overrides)


def install_signal_handler(controller: HealthCheckController):
    """Route SIGINT to controller cancellation. Returns the previous handler."""
    if threading.current_thread() is not threading.main_thread():
        return None

    def handler(signum, frame):
        logger.info(f"Received signal {signum}, cancelling run")
        controller.cancel()

    return signal.signal(signal.SIGINT, handler)


def run_cli(argv: Optional[List[str]] = None) -> int:
    """
    Run the checker and return the process exit code.

    Exit code 1 means nothing was probed (no URLs or a setup error).
    Exit code 0 means the run completed, whatever the endpoints' health.
    """
    parser = create_cli_parser()
    args = parser.parse_args(argv)
    started = datetime.now()

    try:
        config = load_configuration(args)
    except CheckerError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        log_path = setup_logging(config.log_level, config.log_dir, config.log_retention_days, started)
    except OSError as e:
        print(f"Failed to set up logging in {config.log_dir}: {e}", file=sys.stderr)
        return 1

    events = get_business_logger('checker')
    previous_handler = None

    try:
        urls = resolve_urls(args.file, args.urls)
        if not urls:
            print("No endpoints given: use --file or pass URLs as arguments", file=sys.stderr)
            return 1

        ensure_writable(config.output.csv_path)

        events.info(f"Ollama checker v{__version__} starting")
        events.info(f"Arguments: {sys.argv if argv is None else argv}")
        events.info(f"Total tasks: {len(urls)}")

        reporter = ConsoleReporter(show_progress=config.run.show_progress)
        controller = HealthCheckController(config, on_progress=reporter.on_result)

        previous_handler = install_signal_handler(controller)
        summary = controller.run(urls)

        export_path = export_csv(summary.successful_results, config.output.csv_path)
        reporter.print_summary(summary, export_path=export_path, log_path=log_path)

        events.info(f"Check complete: succeeded {summary.succeeded}/failed {summary.failed}"
                    + (f"/abandoned {summary.abandoned}" if summary.abandoned else ""))
        return 0

    except CheckerError as e:
        logger.error(f"Checker error: {e} {e.details or ''}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
        shutdown_logging()


def main():
    """Main entry point with command-line interface."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
