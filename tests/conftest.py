import asyncio
import logging

import pytest

from linkcrawler.crawler.fetcher import FetchResult
from linkcrawler.utils.config import Config, CrawlerConfig


def html_page(*hrefs: str) -> bytes:
    """Build a small HTML document with one anchor per href."""
    anchors = ''.join(f'<li><a href="{href}">link</a></li>' for href in hrefs)
    return f'<html><head><title>t</title></head><body><ul>{anchors}</ul></body></html>'.encode()


class FakeFetcher:
    """Transport stand-in serving canned pages and recording every fetch.

    ``pages`` maps URL strings to ``(status, body)`` or
    ``(status, body, content_type)``. Unknown URLs fail like a refused
    connection. ``delays`` lets a test make some fetches finish later than
    others.
    """

    def __init__(self, pages=None, delays=None):
        self.pages = pages or {}
        self.delays = delays or {}
        self.calls = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        await asyncio.sleep(self.delays.get(url, 0))

        page = self.pages.get(url)
        if page is None:
            return FetchResult(url=url, status_code=0,
                               error="Client error: Connection refused")

        status, body = page[0], page[1]
        content_type = page[2] if len(page) > 2 else 'text/html; charset=utf-8'
        return FetchResult(url=url, status_code=status, body=body, content_type=content_type)

    def get_stats(self):
        return {'total_requests': len(self.calls)}


def make_config(**crawler_settings) -> Config:
    return Config(crawler=CrawlerConfig(**crawler_settings))


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
