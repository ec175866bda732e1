"""
Command line entry point for the page downloader.

Usage:
    # Download the URLs listed in config.yaml
    python -m page_downloader

    # Download specific URLs
    python -m page_downloader https://www.python.org https://pypi.org

    # Custom config and Prometheus exporter
    python -m page_downloader --config ./config.yaml --metrics-port 8000

Exit codes:
    0: Batch completed (individual URLs may still have failed)
    1: Nothing to do or invalid configuration
    2: Invalid input (disposed service, missing or invalid URLs)
    130: Interrupted (second signal or KeyboardInterrupt)
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from prometheus_client import CollectorRegistry, start_http_server

from core.errors.exceptions import PreconditionError
from core.logging.setup import get_logger, setup_logging
from core.logging.utilities import log_exception
from page_downloader.bootstrap import build_service
from page_downloader.config import AppConfig, load_config
from page_downloader.models import PageResult

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Download a batch of web pages with caching and retry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Download the URLs listed in config.yaml
    python -m page_downloader

    # Download specific URLs with a metrics exporter on port 9090
    python -m page_downloader https://example.com --metrics-port 9090
        """,
    )

    parser.add_argument(
        "urls",
        nargs="*",
        help="URLs to download (default: urls from the config file)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML config file (default: config.yaml in project root)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for Prometheus metrics server (default: disabled)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from config)",
    )

    parser.add_argument(
        "--insecure-tls",
        action="store_true",
        help="Disable TLS certificate validation (test environments only)",
    )

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.metrics_port is not None:
        overrides["metrics"] = {"port": args.metrics_port}
    if args.log_dir:
        overrides["logging"] = {"log_dir": args.log_dir}
    if args.insecure_tls:
        overrides["downloader"] = {"allow_insecure_tls": True}
    return overrides


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, cancel_event: asyncio.Event) -> None:
    """
    Route SIGINT/SIGTERM to the batch cancellation event.

    First signal: in-flight downloads finish as "Download cancelled" and the
    results are still printed. Second signal: cancel every task.

    Signal handlers are not supported on Windows; KeyboardInterrupt applies there.
    """

    def handle_signal(sig):
        if not cancel_event.is_set():
            logger.info(f"Received signal {sig.name}, cancelling downloads...")
            cancel_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def print_progress(percent: int) -> None:
    print(f"Progress: {percent}%")


def print_result(result: PageResult) -> None:
    print(f"\nURL: {result.url}")
    if result.success:
        print("Success")
        print(f"Content Length: {len(result.content)} characters")
        print(f"First {PREVIEW_CHARS} characters: {result.content[:PREVIEW_CHARS]}...")
    else:
        print("Failed")
        print(f"Error: {result.error_message}")


async def run(
    config: AppConfig,
    urls: List[str],
    registry: Optional[CollectorRegistry] = None,
) -> int:
    """Download the batch and print results. Returns the process exit code."""
    cancel_event = asyncio.Event()
    setup_signal_handlers(asyncio.get_running_loop(), cancel_event)

    try:
        async with build_service(config, registry=registry) as service:
            try:
                results = await service.download_pages(
                    urls,
                    progress=print_progress,
                    cancel_event=cancel_event,
                )
            except PreconditionError as e:
                log_exception(logger, e, "Invalid input.", include_traceback=False)
                return 2
    except asyncio.CancelledError:
        # Second signal cancelled every task; the service was still closed
        logger.warning("Shutdown forced, batch abandoned")
        return 130

    for result in results:
        print_result(result)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    global logger
    args = parse_args(argv)

    # WEBDL_* overrides may come from a .env file
    load_dotenv()

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, overrides=_cli_overrides(args))

    setup_logging(
        name="page_downloader",
        log_dir=Path(config.logging.log_dir),
        json_format=config.logging.json_logs,
        console_level=getattr(logging, config.logging.level, logging.INFO),
        worker_id=os.getenv("WORKER_ID", "page-downloader"),
    )
    # Re-get logger after setup to use new handlers
    logger = get_logger(__name__)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return 1

    urls = args.urls or config.urls
    if not urls:
        logger.error("No URLs configured")
        print("No URLs configured. Pass URLs on the command line or set 'urls' in the config file.")
        return 1

    registry = CollectorRegistry()
    if config.metrics.port is not None:
        logger.info(f"Starting metrics server on port {config.metrics.port}")
        start_http_server(config.metrics.port, registry=registry)

    try:
        return asyncio.run(run(config, urls, registry))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
