"""
Web crawler core components.
"""

from .channel import OutcomeChannel, ChannelClosedError
from .fetcher import WebFetcher, FetchResult
from .parser import LinkExtractor, LinkExtractionError
from .scheduler import CrawlOrchestrator, CrawlStats
from .url_frontier import URLFrontier
from .url_normalizer import URL, MalformedURLError, normalize, parse_url
from .worker import FetchWorker, ParseOutcome, Success, Skipped, SkipReason

__all__ = [
    'OutcomeChannel', 'ChannelClosedError',
    'WebFetcher', 'FetchResult',
    'LinkExtractor', 'LinkExtractionError',
    'CrawlOrchestrator', 'CrawlStats',
    'URLFrontier',
    'URL', 'MalformedURLError', 'normalize', 'parse_url',
    'FetchWorker', 'ParseOutcome', 'Success', 'Skipped', 'SkipReason'
]
