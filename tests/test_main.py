import argparse
import io
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest

import main
from linkcrawler.utils.config import Config, LoggingConfig
from linkcrawler.utils.logger import JSONFormatter, setup_logging


def test_budget_argument_must_be_a_non_negative_integer():
    assert main.non_negative_int('0') == 0
    assert main.non_negative_int('42') == 42
    for bad in ('-1', 'ten', '1.5'):
        with pytest.raises(argparse.ArgumentTypeError):
            main.non_negative_int(bad)


def test_bad_budget_is_a_fatal_startup_error():
    with pytest.raises(SystemExit) as excinfo:
        main.main(['http://root.test/', 'lots'])
    assert excinfo.value.code != 0


def test_bad_seed_is_a_fatal_startup_error(capsys):
    assert main.main(['not a url']) == 1
    assert 'invalid seed URL' in capsys.readouterr().err


def test_missing_config_file_is_fatal(tmp_path, capsys):
    assert main.main(['http://root.test/', '--config', str(tmp_path / 'nope.yaml')]) == 1
    assert 'not found' in capsys.readouterr().err


def test_command_line_overrides_config():
    args = main.build_parser().parse_args([
        'http://root.test/', '3',
        '--max-concurrent', '2', '--max-outcomes', '7', '--timeout', '5', '--allow-https',
    ])

    config = main.apply_overrides(Config(), args)

    assert config.crawler.max_requests == 3
    assert config.crawler.max_concurrent_requests == 2
    assert config.crawler.max_outcomes == 7
    assert config.crawler.request_timeout == 5
    assert config.crawler.allowed_schemes == ['http', 'https']


def test_budget_defaults_to_config_value():
    args = main.build_parser().parse_args(['http://root.test/'])
    assert main.apply_overrides(Config(), args).crawler.max_requests == 10


def test_successful_crawl_exits_zero(restore_root_logger):
    with patch.object(main.CrawlOrchestrator, 'crawl', new=AsyncMock()) as crawl, \
            patch.object(main.CrawlOrchestrator, 'close', new=AsyncMock()):
        assert main.main(['http://root.test/', '2']) == 0

    crawl.assert_awaited_once()
    assert str(crawl.await_args.args[0]) == 'http://root.test/'


def test_crawl_failure_exits_non_zero(restore_root_logger):
    failing = AsyncMock(side_effect=RuntimeError('transport init failed'))
    with patch.object(main.CrawlOrchestrator, 'crawl', new=failing), \
            patch.object(main.CrawlOrchestrator, 'close', new=AsyncMock()):
        assert main.main(['http://root.test/']) == 1


def test_progress_goes_to_stdout_and_diagnostics_to_stderr(restore_root_logger):
    stdout, stderr = io.StringIO(), io.StringIO()
    setup_logging(LoggingConfig(), stdout=stdout, stderr=stderr)

    logger = logging.getLogger('linkcrawler.test')
    logger.info('Fetching URL: http://root.test/')
    logger.warning('Rejected status 404 for http://root.test/x')

    assert stdout.getvalue() == 'Fetching URL: http://root.test/\n'
    assert stderr.getvalue() == 'Rejected status 404 for http://root.test/x\n'


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord('linkcrawler', logging.INFO, __file__, 1, 'hello %s', ('world',), None)
    entry = json.loads(JSONFormatter().format(record))

    assert entry['message'] == 'hello world'
    assert entry['level'] == 'INFO'
    assert entry['logger'] == 'linkcrawler'


def test_non_mapping_config_is_fatal(tmp_path, capsys):
    path = tmp_path / 'list.yaml'
    path.write_text("- crawler\n")

    assert main.main(['http://root.test/', '--config', str(path)]) == 1
    assert 'Error:' in capsys.readouterr().err
