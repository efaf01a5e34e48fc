"""
Prometheus metrics for the web crawler system.
"""

import logging
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class CrawlerMonitor:
    """
    Crawl metrics kept on a private registry.

    Each monitor owns its registry, so several crawls (or tests) in one
    process never collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.logger = logging.getLogger(__name__)
        self.registry = registry or CollectorRegistry()

        self.requests_scheduled = Counter(
            'crawler_requests_scheduled_total',
            'Fetch-scheduling decisions charged against the budget',
            registry=self.registry
        )
        self.fetches_spawned = Counter(
            'crawler_fetches_spawned_total',
            'Fetch workers actually started',
            registry=self.registry
        )
        self.pages_fetched = Counter(
            'crawler_pages_fetched_total',
            'Pages fetched and parsed successfully',
            ['status_code'],
            registry=self.registry
        )
        self.pages_skipped = Counter(
            'crawler_pages_skipped_total',
            'Scheduled fetches that produced no links',
            ['reason'],
            registry=self.registry
        )
        self.links_discovered = Counter(
            'crawler_links_discovered_total',
            'New URLs admitted to the frontier',
            registry=self.registry
        )
        self.links_rejected = Counter(
            'crawler_links_rejected_total',
            'Raw links dropped before admission',
            ['reason'],
            registry=self.registry
        )
        self.in_flight = Gauge(
            'crawler_fetches_in_flight',
            'Fetch workers currently running',
            registry=self.registry
        )
        self.links_per_page = Histogram(
            'crawler_outcome_links',
            'Raw links per fetched page',
            buckets=(0, 1, 5, 10, 25, 50, 100, 250, 1000),
            registry=self.registry
        )

    def start_server(self, port: int):
        """Start the Prometheus exposition HTTP server."""
        start_http_server(port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {port}")

    def value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample value back from the registry."""
        result = self.registry.get_sample_value(name, labels or {})
        return result or 0.0
