from unittest.mock import MagicMock

import pytest

from linkcrawler.crawler.channel import OutcomeChannel
from linkcrawler.crawler.parser import LinkExtractionError
from linkcrawler.crawler.url_normalizer import parse_url
from linkcrawler.crawler.worker import (
    FetchWorker, ParseOutcome, SkipReason, Skipped, Success, is_accepted_status
)

from conftest import FakeFetcher, html_page

URL_A = parse_url('http://a.test/')


@pytest.mark.parametrize('status', [200, 203, 299, 301, 302])
def test_accepted_statuses(status):
    assert is_accepted_status(status)


@pytest.mark.parametrize('status', [100, 303, 304, 307, 308, 404, 500])
def test_rejected_statuses(status):
    assert not is_accepted_status(status)


@pytest.mark.asyncio
async def test_success_carries_links_in_document_order():
    fetcher = FakeFetcher({'http://a.test/': (200, html_page('/b', '/c', '/b'))})

    result = await FetchWorker(fetcher).run(URL_A)

    assert result == Success(ParseOutcome(URL_A, 200, ('/b', '/c', '/b')))


@pytest.mark.asyncio
@pytest.mark.parametrize('status', [301, 302])
async def test_redirect_body_is_parsed(status):
    fetcher = FakeFetcher({'http://a.test/': (status, html_page('/moved'))})

    result = await FetchWorker(fetcher).run(URL_A)

    assert isinstance(result, Success)
    assert result.outcome.status == status
    assert result.outcome.links == ('/moved',)
    assert fetcher.calls == ['http://a.test/']


@pytest.mark.asyncio
async def test_not_found_is_skipped():
    fetcher = FakeFetcher({'http://a.test/': (404, html_page('/never'))})

    result = await FetchWorker(fetcher).run(URL_A)

    assert result == Skipped(URL_A, SkipReason.BAD_STATUS, 'HTTP 404', 404)


@pytest.mark.asyncio
async def test_transport_failure_is_skipped():
    result = await FetchWorker(FakeFetcher()).run(URL_A)

    assert isinstance(result, Skipped)
    assert result.reason is SkipReason.TRANSPORT_ERROR
    assert 'Connection refused' in result.detail


@pytest.mark.asyncio
async def test_parse_failure_is_skipped():
    fetcher = FakeFetcher({'http://a.test/': (200, b'<a href="/x">')})
    extractor = MagicMock()
    extractor.extract.side_effect = LinkExtractionError('parser exploded')

    result = await FetchWorker(fetcher, extractor).run(URL_A)

    assert isinstance(result, Skipped)
    assert result.reason is SkipReason.PARSE_ERROR
    assert result.status == 200


@pytest.mark.asyncio
async def test_non_markup_content_yields_no_links():
    fetcher = FakeFetcher({'http://a.test/': (200, b'\x89PNG<a href="/x">', 'image/png')})
    extractor = MagicMock()

    result = await FetchWorker(fetcher, extractor).run(URL_A)

    assert result == Success(ParseOutcome(URL_A, 200, ()))
    extractor.extract.assert_not_called()


@pytest.mark.asyncio
async def test_report_sends_outcome_to_channel():
    fetcher = FakeFetcher({'http://a.test/': (200, html_page('/b'))})
    channel = OutcomeChannel(4)

    await FetchWorker(fetcher).report(URL_A, channel)

    assert await channel.receive() == Success(ParseOutcome(URL_A, 200, ('/b',)))


@pytest.mark.asyncio
async def test_report_on_closed_channel_is_dropped():
    fetcher = FakeFetcher({'http://a.test/': (200, html_page('/b'))})
    channel = OutcomeChannel(4)
    channel.close()

    await FetchWorker(fetcher).report(URL_A, channel)

    assert channel.empty()


@pytest.mark.asyncio
async def test_report_turns_unexpected_exception_into_skip():
    fetcher = FakeFetcher({'http://a.test/': (200, html_page('/b'))})
    extractor = MagicMock()
    extractor.extract.side_effect = KeyError('attrs')
    channel = OutcomeChannel(4)

    await FetchWorker(fetcher, extractor).report(URL_A, channel)

    result = await channel.receive()
    assert isinstance(result, Skipped)
    assert result.url == URL_A
    assert result.reason is SkipReason.UNEXPECTED_ERROR
    assert 'attrs' in result.detail
