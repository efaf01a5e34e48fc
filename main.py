#!/usr/bin/env python3
"""
Main entry point for the web crawler.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

import yaml

from linkcrawler import __version__
from linkcrawler.crawler.scheduler import CrawlOrchestrator
from linkcrawler.crawler.url_normalizer import URL, MalformedURLError, parse_url
from linkcrawler.utils.config import Config, load_config, validate_config
from linkcrawler.utils.logger import log_system_info, setup_logging
from linkcrawler.utils.monitoring import CrawlerMonitor


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.orchestrator: Optional[CrawlOrchestrator] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event = asyncio.Event()

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    async def run(self, seed: URL, config: Config) -> int:
        """Run the crawler from ``seed`` until it completes or is interrupted."""
        self.setup_signal_handlers()

        try:
            monitor = CrawlerMonitor()
            if config.monitoring.metrics_enabled:
                monitor.start_server(config.monitoring.prometheus_port)

            self.orchestrator = CrawlOrchestrator(config, monitor=monitor)

            crawl_task = asyncio.create_task(self.orchestrator.crawl(seed))
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Wait for either crawling to complete or shutdown signal
            done, pending = await asyncio.wait(
                [crawl_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if crawl_task in done:
                # Re-raise anything the crawl itself failed with
                crawl_task.result()
            else:
                self.logger.info("Shutdown requested, crawl stopped")

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            if self.orchestrator:
                await self.orchestrator.close()

        return 0


def non_negative_int(value: str) -> int:
    """argparse type for the request budget."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value!r}")
    return number


def positive_int(value: str) -> int:
    number = non_negative_int(value)
    if number == 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Breadth-first web crawler with a global request budget",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py http://example.org/                  # Up to 10 requests
  python main.py http://example.org/ 50               # Up to 50 requests
  python main.py http://example.org/ --config crawl.yaml
  python main.py http://example.org/ --allow-https    # Also crawl https links
        """
    )

    parser.add_argument('seed_url', help='Absolute URL to start crawling from')
    parser.add_argument(
        'max_requests',
        nargs='?',
        type=non_negative_int,
        help='Maximum number of fetch requests to schedule (default: 10)'
    )
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument(
        '--max-concurrent',
        type=positive_int,
        help='Maximum number of fetches in flight at once'
    )
    parser.add_argument(
        '--max-outcomes',
        type=positive_int,
        help='Stop after processing this many fetched pages'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Per-request timeout in seconds'
    )
    parser.add_argument(
        '--allow-https',
        action='store_true',
        help='Admit https links as well as http'
    )
    parser.add_argument('--log-level', help='Logging level (default: INFO)')
    parser.add_argument(
        '--version',
        action='version',
        version=f'linkcrawler {__version__}'
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command-line settings on top of the loaded configuration."""
    if args.max_requests is not None:
        config.crawler.max_requests = args.max_requests
    if args.max_concurrent is not None:
        config.crawler.max_concurrent_requests = args.max_concurrent
    if args.max_outcomes is not None:
        config.crawler.max_outcomes = args.max_outcomes
    if args.timeout is not None:
        config.crawler.request_timeout = args.timeout
    if args.allow_https and 'https' not in config.crawler.allowed_schemes:
        config.crawler.allowed_schemes.append('https')
    if args.log_level:
        config.logging.level = args.log_level

    validate_config(config)
    return config


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        seed = parse_url(args.seed_url)
    except MalformedURLError as e:
        print(f"Error: invalid seed URL: {e}", file=sys.stderr)
        return 1

    try:
        config = apply_overrides(load_config(args.config), args)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)
    log_system_info()

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(seed, config))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
