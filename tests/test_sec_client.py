import pytest

from pitchpulse.sec_client import (
    SEC_COMPANYFACTS_URL,
    SEC_SUBMISSIONS_URL,
    SEC_TICKERS_URL,
    SecClient,
    SecDataError,
    SecRateLimitError,
    TickerNotFoundError,
    pad_cik,
)
from tests.helpers.run_log import read_steps
from tests.helpers.fake_sec import FakeGet, FakeResponse, companyfacts, connection_error


TICKERS = {
    "0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."},
    "1": {"cik_str": 789019, "ticker": "MSFT", "title": "MICROSOFT CORP"},
}


def _client(get, sleeps=None, **kwargs):
    sleeps = sleeps if sleeps is not None else []
    return SecClient(
        user_agent="Test Agent test@example.com",
        get_fn=get,
        sleep_fn=sleeps.append,
        **kwargs,
    )


def test_pad_cik():
    assert pad_cik(320193) == "0000320193"
    assert pad_cik("0000320193") == "0000320193"


def test_resolve_ticker_is_case_insensitive_and_cached():
    get = FakeGet({SEC_TICKERS_URL: FakeResponse(200, TICKERS)})
    client = _client(get)
    assert client.resolve_ticker("aapl") == ("0000320193", "Apple Inc.")
    assert client.resolve_ticker("MSFT") == ("0000789019", "MICROSOFT CORP")
    assert get.calls == [SEC_TICKERS_URL]
    assert get.headers[0]["User-Agent"] == "Test Agent test@example.com"


def test_unknown_ticker_raises():
    client = _client(FakeGet({SEC_TICKERS_URL: FakeResponse(200, TICKERS)}))
    with pytest.raises(TickerNotFoundError, match="ZZZZ"):
        client.resolve_ticker("zzzz")


def test_rate_limited_requests_back_off_exponentially(tmp_path):
    url = SEC_COMPANYFACTS_URL.format(cik="0000320193")
    payload = companyfacts(320193, "Apple Inc.", {})
    get = FakeGet({url: [FakeResponse(429), FakeResponse(429), FakeResponse(200, payload)]})
    sleeps = []
    client = _client(get, sleeps, max_retries=3, retry_base_delay=1.0, log_dir=tmp_path)

    assert client.fetch_company_facts("320193") == payload
    assert sleeps == [1.0, 2.0]
    assert [step["step"] for step in read_steps(tmp_path)] == ["sec_rate_limited", "sec_rate_limited"]


def test_rate_limit_exhaustion_raises():
    url = SEC_COMPANYFACTS_URL.format(cik="0000320193")
    sleeps = []
    client = _client(FakeGet({url: FakeResponse(429)}), sleeps, max_retries=3, retry_base_delay=0.5)
    with pytest.raises(SecRateLimitError):
        client.fetch_company_facts("320193")
    assert sleeps == [0.5, 1.0, 2.0]


def test_connection_errors_are_retried_then_wrapped():
    url = SEC_COMPANYFACTS_URL.format(cik="0000000001")
    payload = companyfacts(1, "Retry Co.", {})
    get = FakeGet({url: [connection_error(), FakeResponse(200, payload)]})
    assert _client(get).fetch_company_facts("1") == payload

    failing = FakeGet({url: connection_error()})
    with pytest.raises(SecDataError, match="connection reset"):
        _client(failing, max_retries=2).fetch_company_facts("1")
    assert len(failing.calls) == 2


def test_company_facts_http_error_raises():
    client = _client(FakeGet({}))
    with pytest.raises(SecDataError, match="404"):
        client.fetch_company_facts("1")


def test_fetch_sic_code():
    url = SEC_SUBMISSIONS_URL.format(cik="0000320193")
    client = _client(FakeGet({url: FakeResponse(200, {"sic": "3571", "name": "Apple Inc."})}))
    assert client.fetch_sic_code("320193") == "3571"


def test_fetch_sic_code_tolerates_failures():
    url = SEC_SUBMISSIONS_URL.format(cik="0000000001")
    assert _client(FakeGet({})).fetch_sic_code("1") is None
    assert _client(FakeGet({url: FakeResponse(200, {"sic": ""})})).fetch_sic_code("1") is None
    assert _client(FakeGet({url: FakeResponse(200)})).fetch_sic_code("1") is None
    assert _client(FakeGet({url: FakeResponse(429)}), max_retries=1).fetch_sic_code("1") is None


def test_non_json_bodies_raise_sec_data_error():
    facts_url = SEC_COMPANYFACTS_URL.format(cik="0000000001")
    with pytest.raises(SecDataError, match="not valid JSON"):
        _client(FakeGet({facts_url: FakeResponse(200, None)})).fetch_company_facts("1")

    with pytest.raises(SecDataError, match="not valid JSON"):
        _client(FakeGet({SEC_TICKERS_URL: FakeResponse(200, None)})).resolve_ticker("AAPL")


def test_fetch_sic_code_ignores_non_object_payload():
    url = SEC_SUBMISSIONS_URL.format(cik="0000000001")
    assert _client(FakeGet({url: FakeResponse(200, ["3571"])})).fetch_sic_code("1") is None
