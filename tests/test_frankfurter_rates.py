from datetime import date

import httpx
import pytest

from services.frankfurter_rates import FrankfurterRateProvider, closest_rate, parse_series
from settings.config import Settings
from trading.errors import RateUnavailable, UnknownCurrency

SERIES = {
    "amount": 1.0,
    "base": "USD",
    "start_date": "2024-03-08",
    "end_date": "2024-03-15",
    "rates": {
        "2024-03-08": {"BGN": 1.7801},
        "2024-03-11": {"BGN": 1.7850},
        "2024-03-14": {"BGN": 1.7912},
    },
}


def _provider(handler, *, clock=None, **overrides):
    requests = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    config = Settings(RATES_BASE_URL="https://rates.test/v1", **overrides)
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    provider = FrankfurterRateProvider(
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(recording)),
        config=config,
        **kwargs,
    )
    return provider, requests


@pytest.mark.asyncio
async def test_lookup_uses_window_and_closest_previous_date():
    provider, requests = _provider(lambda request: httpx.Response(200, json=SERIES))

    # 2024-03-16 is a Saturday; the last fixing before it is 2024-03-14
    rate = await provider.lookup_rate("usd", date(2024, 3, 16), "bgn")

    assert rate == pytest.approx(1.7912)
    assert len(requests) == 1
    assert requests[0].url.path == "/v1/2024-03-09..2024-03-16"
    assert requests[0].url.params["base"] == "USD"
    assert requests[0].url.params["symbols"] == "BGN"


@pytest.mark.asyncio
async def test_exact_date_preferred():
    provider, _ = _provider(lambda request: httpx.Response(200, json=SERIES))

    assert await provider.lookup_rate("USD", date(2024, 3, 11), "BGN") == pytest.approx(1.7850)


@pytest.mark.asyncio
async def test_series_cached_until_ttl_expires():
    now = [1000.0]
    provider, requests = _provider(
        lambda request: httpx.Response(200, json=SERIES),
        clock=lambda: now[0],
        RATE_CACHE_TTL_SECONDS=60,
    )

    await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    assert len(requests) == 1

    now[0] += 61
    await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_same_currency_needs_no_request():
    provider, requests = _provider(lambda request: httpx.Response(500))

    assert await provider.lookup_rate("EUR", date(2024, 3, 15), "EUR") == 1.0
    assert requests == []


@pytest.mark.asyncio
async def test_unknown_currency():
    provider, requests = _provider(lambda request: httpx.Response(200, json=SERIES))

    with pytest.raises(UnknownCurrency) as excinfo:
        await provider.lookup_rate("XYZ", date(2024, 3, 15), "BGN")
    assert excinfo.value.currency == "XYZ"
    assert requests == []


@pytest.mark.asyncio
async def test_http_error_becomes_rate_unavailable():
    provider, _ = _provider(lambda request: httpx.Response(503, text="down"))

    with pytest.raises(RateUnavailable) as excinfo:
        await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
    assert not isinstance(excinfo.value, UnknownCurrency)


@pytest.mark.asyncio
async def test_transport_error_becomes_rate_unavailable():
    def boom(request):
        raise httpx.ConnectError("no route", request=request)

    provider, _ = _provider(boom)

    with pytest.raises(RateUnavailable):
        await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")


@pytest.mark.asyncio
async def test_invalid_json_becomes_rate_unavailable():
    provider, _ = _provider(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(RateUnavailable):
        await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")


@pytest.mark.asyncio
async def test_no_fixing_in_window():
    provider, requests = _provider(lambda request: httpx.Response(200, json={"rates": {}}))

    with pytest.raises(RateUnavailable):
        await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    # Empty series are not cached
    with pytest.raises(RateUnavailable):
        await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    assert len(requests) == 2


def test_parse_series_skips_bad_values():
    payload = {"rates": {"2024-03-11": {"BGN": 1.78}, "2024-03-12": {"BGN": 0}, "2024-03-13": "x"}}

    assert parse_series(payload, "BGN") == {"2024-03-11": 1.78}
    assert parse_series(["not", "a", "dict"], "BGN") == {}


def test_closest_rate():
    series = {"2024-03-08": 1.0, "2024-03-11": 2.0}

    assert closest_rate(series, date(2024, 3, 11)) == 2.0
    assert closest_rate(series, date(2024, 3, 10)) == 1.0
    assert closest_rate(series, date(2024, 3, 7)) is None


@pytest.mark.asyncio
async def test_expired_series_evicted_from_cache():
    now = [1000.0]
    provider, requests = _provider(
        lambda request: httpx.Response(200, json=SERIES),
        clock=lambda: now[0],
        RATE_CACHE_TTL_SECONDS=60,
    )

    await provider.lookup_rate("USD", date(2024, 3, 14), "BGN")
    await provider.lookup_rate("USD", date(2024, 3, 15), "BGN")
    assert len(provider._cache) == 2

    now[0] += 61
    await provider.lookup_rate("USD", date(2024, 3, 16), "BGN")

    assert len(requests) == 3
    assert list(provider._cache) == [("USD", "BGN", date(2024, 3, 9), date(2024, 3, 16))]
