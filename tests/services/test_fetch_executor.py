from unittest.mock import Mock

import pytest

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.http_response import HttpResponse
from siteaudit.exceptions import FetchError
from siteaudit.services.fetch_executor import FetchExecutor

URL = "https://example.com/"


def _ok(status=200):
    return HttpResponse(status_code=status, text="<html></html>", content_type="text/html")


def _executor(side_effect, **kwargs):
    http = Mock()
    http.fetch.side_effect = side_effect
    sleeps = []
    executor = FetchExecutor(http, sleep=sleeps.append, **kwargs)
    return executor, http, sleeps


def test_backoff_is_exponential():
    executor, _, _ = _executor([])
    assert [executor.backoff_ms(i) for i in range(3)] == [700, 1400, 2800]


def test_network_errors_are_retried_with_exponential_backoff():
    executor, http, sleeps = _executor([FetchError(URL), FetchError(URL), _ok()])
    response = executor.fetch(URL, CrawlSettings(delay_ms=0))
    assert response.status_code == 200
    assert http.fetch.call_count == 3
    assert sleeps == [0.7, 1.4]


def test_politeness_delay_precedes_every_attempt():
    executor, _, sleeps = _executor([FetchError(URL), _ok()])
    executor.fetch(URL, CrawlSettings(delay_ms=250))
    assert sleeps == [0.25, 0.7, 0.25]


def test_gives_up_after_max_attempts():
    executor, http, sleeps = _executor([FetchError(URL)] * 3)
    with pytest.raises(FetchError) as exc:
        executor.fetch(URL, CrawlSettings(delay_ms=0))
    assert http.fetch.call_count == 3
    assert exc.value.attempts == 3
    # no backoff after the last attempt
    assert sleeps == [0.7, 1.4]


def test_server_errors_and_429_are_retried():
    executor, http, _ = _executor([_ok(503), _ok(429), _ok(200)])
    assert executor.fetch(URL, CrawlSettings(delay_ms=0)).status_code == 200
    assert http.fetch.call_count == 3


def test_persistent_server_error_keeps_last_status():
    executor, _, _ = _executor([_ok(500), _ok(502), _ok(503)])
    with pytest.raises(FetchError) as exc:
        executor.fetch(URL, CrawlSettings(delay_ms=0))
    assert exc.value.status_code == 503


def test_last_status_survives_a_final_network_error():
    executor, _, _ = _executor([_ok(500), _ok(500), FetchError(URL)])
    with pytest.raises(FetchError) as exc:
        executor.fetch(URL, CrawlSettings(delay_ms=0))
    assert exc.value.status_code == 500


def test_client_errors_fail_immediately():
    executor, http, sleeps = _executor([_ok(404)])
    with pytest.raises(FetchError) as exc:
        executor.fetch(URL, CrawlSettings(delay_ms=0))
    assert exc.value.status_code == 404
    assert http.fetch.call_count == 1
    assert sleeps == []


def test_redirect_status_is_a_success():
    executor, _, _ = _executor([_ok(301)])
    assert executor.fetch(URL, CrawlSettings(delay_ms=0)).status_code == 301


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        FetchExecutor(Mock(), max_attempts=0)


def test_robots_fetch_waits_for_politeness_delay():
    http = Mock()
    http.fetch_robots.return_value = HttpResponse(status_code=200, text="User-agent: *")
    sleeps = []
    executor = FetchExecutor(http, sleep=sleeps.append)
    settings = CrawlSettings(delay_ms=300)

    response = executor.fetch_robots(URL + "robots.txt", settings)

    assert response.status_code == 200
    assert sleeps == [0.3]
    http.fetch_robots.assert_called_once_with(URL + "robots.txt", settings)
    http.fetch.assert_not_called()


def test_robots_fetch_error_is_not_retried():
    http = Mock()
    http.fetch_robots.side_effect = FetchError(URL + "robots.txt")
    sleeps = []
    executor = FetchExecutor(http, sleep=sleeps.append)

    with pytest.raises(FetchError):
        executor.fetch_robots(URL + "robots.txt", CrawlSettings(delay_ms=0))
    assert http.fetch_robots.call_count == 1
    assert sleeps == []
