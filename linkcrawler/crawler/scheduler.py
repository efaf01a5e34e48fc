"""
Crawl orchestrator: turns fetch outcomes into new work under a request budget.
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from .channel import OutcomeChannel
from .fetcher import WebFetcher
from .parser import LinkExtractor
from .url_frontier import URLFrontier
from .url_normalizer import URL, MalformedURLError, is_admissible, normalize
from .worker import FetchOutcome, FetchWorker, ParseOutcome, Skipped
from ..utils.config import Config
from ..utils.monitoring import CrawlerMonitor


@dataclass
class CrawlStats:
    """Statistics for one crawl."""
    start_time: float
    requests_scheduled: int = 0
    fetches_spawned: int = 0
    pages_fetched: int = 0
    pages_skipped: int = 0
    links_found: int = 0
    new_links: int = 0
    malformed_links: int = 0
    rejected_scheme_links: int = 0
    skip_reasons: Counter = field(default_factory=Counter)
    end_time: Optional[float] = None

    @property
    def elapsed_time(self) -> float:
        return (self.end_time or time.time()) - self.start_time

    def to_dict(self) -> Dict:
        return {
            'requests_scheduled': self.requests_scheduled,
            'fetches_spawned': self.fetches_spawned,
            'pages_fetched': self.pages_fetched,
            'pages_skipped': self.pages_skipped,
            'links_found': self.links_found,
            'new_links': self.new_links,
            'malformed_links': self.malformed_links,
            'rejected_scheme_links': self.rejected_scheme_links,
            'skip_reasons': dict(self.skip_reasons),
            'elapsed_time': self.elapsed_time,
        }


class CrawlOrchestrator:
    """
    Breadth-first crawl driver.

    All frontier and counter mutation happens on the single coroutine that
    consumes the outcome channel; workers only ever send immutable outcomes.
    The request counter is compared to the budget before it is incremented,
    and a candidate found at or over budget is still charged but never
    fetched, so the counter may end above the budget while the number of
    fetches started never does.
    """

    def __init__(self, config: Config, fetcher: Optional[WebFetcher] = None,
                 extractor: Optional[LinkExtractor] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        crawler_config = config.crawler
        self.budget = crawler_config.max_requests
        self.max_outcomes = crawler_config.max_outcomes
        self.allowed_schemes = frozenset(s.lower() for s in crawler_config.allowed_schemes)

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or WebFetcher(
            user_agent=crawler_config.user_agent,
            request_timeout=crawler_config.request_timeout,
            max_concurrent_requests=crawler_config.max_concurrent_requests,
            max_content_size=crawler_config.max_content_size
        )
        self.worker = FetchWorker(self.fetcher, extractor)
        self.monitor = monitor or CrawlerMonitor()

        # Crawl state
        self.frontier = URLFrontier()
        self.channel: Optional[OutcomeChannel] = None
        self.stats = CrawlStats(start_time=time.time())
        self.pending = 0
        self.outcomes_processed = 0
        self.tasks: Set[asyncio.Task] = set()

    async def initialize(self):
        """Open the transport."""
        if self._owns_fetcher:
            await self.fetcher.start()

    def start(self, seed: URL):
        """
        Begin a crawl at ``seed``.

        Must be called from within the running event loop, since it spawns
        the first worker.
        """
        self.frontier = URLFrontier()
        self.channel = OutcomeChannel(self.config.crawler.channel_capacity)
        self.stats = CrawlStats(start_time=time.time())
        self.pending = 0
        self.outcomes_processed = 0

        self.frontier.add(seed)
        self.logger.info(f"Starting crawl at {seed} with a budget of {self.budget} requests")
        self._dispatch(seed)

    def on_outcome(self, outcome: ParseOutcome):
        """
        Admit the new links of one fetched page and schedule fetches for them.

        Links are resolved against the page URL, filtered by scheme and
        checked against every URL seen so far. Survivors are recorded in the
        frontier and dispatched in sorted order.
        """
        admitted = []
        for raw in outcome.links:
            try:
                url = normalize(outcome.url, raw)
            except MalformedURLError as e:
                self.stats.malformed_links += 1
                self.monitor.links_rejected.labels(reason='malformed').inc()
                self.logger.info(f"Invalid URL: {raw!r} ({e})")
                continue

            if not is_admissible(url, self.allowed_schemes):
                self.stats.rejected_scheme_links += 1
                self.monitor.links_rejected.labels(reason='scheme').inc()
                self.logger.info(f"Skipping HTTPS/unrecognized-scheme: {url}")
                continue

            if self.frontier.add(url, outcome.links):
                admitted.append(url)

        new_urls = sorted(set(admitted))
        self.stats.links_found += len(outcome.links)
        self.stats.new_links += len(new_urls)
        self.monitor.links_discovered.inc(len(new_urls))
        self.logger.info(
            f"Found {len(outcome.links)} links in {outcome.url}, "
            f"of which {len(new_urls)} are new"
        )

        for url in new_urls:
            self._dispatch(url)

    def _dispatch(self, url: URL) -> bool:
        """Charge ``url`` against the budget and start a worker if allowed."""
        over_budget = self.stats.requests_scheduled >= self.budget
        self.stats.requests_scheduled += 1
        self.monitor.requests_scheduled.inc()

        if over_budget:
            self.logger.debug(f"Request budget exhausted, not fetching {url}")
            return False

        task = asyncio.create_task(self.worker.report(url, self.channel))
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

        self.pending += 1
        self.stats.fetches_spawned += 1
        self.monitor.fetches_spawned.inc()
        self.monitor.in_flight.set(self.pending)
        return True

    def _handle(self, result: FetchOutcome):
        self.pending -= 1
        self.monitor.in_flight.set(self.pending)

        if isinstance(result, Skipped):
            self.stats.pages_skipped += 1
            self.stats.skip_reasons[result.reason.value] += 1
            self.monitor.pages_skipped.labels(reason=result.reason.value).inc()
            return

        outcome = result.outcome
        self.outcomes_processed += 1
        self.stats.pages_fetched += 1
        self.monitor.pages_fetched.labels(status_code=str(outcome.status)).inc()
        self.monitor.links_per_page.observe(len(outcome.links))
        self.logger.debug(f"Links on {outcome.url}: {list(outcome.links)}")
        self.on_outcome(outcome)

    def _outcome_cap_reached(self) -> bool:
        return self.max_outcomes is not None and self.outcomes_processed >= self.max_outcomes

    async def run(self):
        """
        Consume outcomes until no worker is in flight or the outcome cap is hit.

        On exit the channel is closed and any workers still running are
        cancelled.
        """
        if self.channel is None:
            raise RuntimeError("start() must be called before run()")

        try:
            while self.pending > 0:
                result = await self.channel.receive()
                self._handle(result)

                if self._outcome_cap_reached():
                    self.logger.info(f"Reached outcome cap: {self.max_outcomes}")
                    break
        finally:
            self.channel.close()
            await self._cancel_workers()
            self.stats.end_time = time.time()

    async def crawl(self, seed: URL) -> CrawlStats:
        """Run a complete crawl from ``seed`` and return its statistics."""
        await self.initialize()
        self.start(seed)
        await self.run()
        self._log_final_stats()
        return self.stats

    async def _cancel_workers(self):
        """Cancel and reap worker tasks that have not reported."""
        if not self.tasks:
            return

        tasks = list(self.tasks)
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)
        self.tasks.clear()

    def _log_final_stats(self):
        """Log final crawl statistics."""
        frontier_stats = self.frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Requests scheduled: {self.stats.requests_scheduled} (budget {self.budget})")
        self.logger.info(f"Fetches started: {self.stats.fetches_spawned}")
        self.logger.info(f"Pages fetched: {self.stats.pages_fetched}")
        self.logger.info(f"Pages skipped: {self.stats.pages_skipped} {dict(self.stats.skip_reasons)}")
        self.logger.info(f"URLs seen: {frontier_stats['total_seen']} on {frontier_stats['total_hosts']} hosts")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")

    async def close(self):
        """Cancel outstanding work and close the transport if owned."""
        await self._cancel_workers()
        if self._owns_fetcher:
            await self.fetcher.close()
        self.logger.info("Crawl orchestrator closed")

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        stats = self.stats.to_dict()
        stats['urls_seen'] = len(self.frontier)
        stats['in_flight'] = self.pending
        return stats
