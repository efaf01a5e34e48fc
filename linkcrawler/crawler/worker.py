"""
Fetch-then-parse unit of work for a single URL.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from .channel import ChannelClosedError, OutcomeChannel
from .fetcher import WebFetcher, is_markup
from .parser import LinkExtractionError, LinkExtractor
from .url_normalizer import URL

# 2xx is always accepted; of the redirect class only these two are
REDIRECT_STATUSES = (301, 302)


@dataclass(frozen=True)
class ParseOutcome:
    """Links found on one successfully fetched page."""
    url: URL
    status: int
    links: Tuple[str, ...] = ()


class SkipReason(Enum):
    """Why a scheduled fetch produced no links."""
    TRANSPORT_ERROR = 'transport_error'
    BAD_STATUS = 'bad_status'
    PARSE_ERROR = 'parse_error'
    UNEXPECTED_ERROR = 'unexpected_error'


@dataclass(frozen=True)
class Success:
    outcome: ParseOutcome


@dataclass(frozen=True)
class Skipped:
    url: URL
    reason: SkipReason
    detail: str = ''
    status: Optional[int] = None


FetchOutcome = Union[Success, Skipped]


def is_accepted_status(status: int) -> bool:
    return 200 <= status < 300 or status in REDIRECT_STATUSES


class FetchWorker:
    """
    Runs one fetch-parse cycle per URL and reports a tagged outcome.

    Failures are never raised or retried: they become ``Skipped`` values so
    the orchestrator only ever sees what happened, not an exception.
    """

    def __init__(self, fetcher: WebFetcher, extractor: Optional[LinkExtractor] = None):
        self.fetcher = fetcher
        self.extractor = extractor or LinkExtractor()
        self.logger = logging.getLogger(__name__)

    async def run(self, url: URL) -> FetchOutcome:
        result = await self.fetcher.fetch(str(url))
        if result.error:
            self.logger.warning(f"Failed to fetch {url}: {result.error}")
            return Skipped(url, SkipReason.TRANSPORT_ERROR, result.error)

        if not is_accepted_status(result.status_code):
            self.logger.warning(f"Rejected status {result.status_code} for {url}")
            return Skipped(url, SkipReason.BAD_STATUS,
                           f"HTTP {result.status_code}", result.status_code)

        if not is_markup(result.content_type):
            self.logger.debug(f"Not parsing {url}: content type {result.content_type}")
            return Success(ParseOutcome(url, result.status_code))

        try:
            links = self.extractor.extract(result.body or b'')
        except LinkExtractionError as e:
            self.logger.warning(f"Failed to parse {url}: {e}")
            return Skipped(url, SkipReason.PARSE_ERROR, str(e), result.status_code)

        return Success(ParseOutcome(url, result.status_code, tuple(links)))

    async def report(self, url: URL, channel: OutcomeChannel):
        """Run the fetch for ``url`` and deliver its outcome to ``channel``."""
        try:
            outcome = await self.run(url)
        except Exception as e:
            self.logger.error(f"Unexpected error crawling {url}: {e}", exc_info=True)
            outcome = Skipped(url, SkipReason.UNEXPECTED_ERROR, str(e))

        try:
            await channel.send(outcome)
        except ChannelClosedError as e:
            self.logger.warning(f"Dropping outcome for {url}: {e}")
