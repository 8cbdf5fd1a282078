"""Tests for the AI pricing transport: status classification, fallback base URL, health probe."""
import httpx
import pytest

from reprice.client.pricing import (
    AI_BASE_URL_KEY,
    PRICING_SUPPORT_KEY_PREFIX,
    BackendStatus,
    PricingClient,
    PricingOutcome,
    parse_quote,
)

PAYLOAD = {
    "model_name": "Apple iPhone 13 Pro 6/128",
    "turns_on": True,
    "screen_condition": "Good",
    "has_box": True,
    "has_bill": True,
    "is_under_warranty": False,
}


def _client(handler, store, base="https://primary.test", fallback="https://fallback.test"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return http, PricingClient(http, store, base, fallback)


class TestParseQuote:
    def test_valid_body(self):
        quote = parse_quote({"final_price": 32000, "base_price": 45000, "logs": ["screen ok"]})
        assert quote.final_price == 32000
        assert quote.base_price == 45000
        assert quote.logs == ["screen ok"]

    def test_missing_or_non_numeric_final_price(self):
        assert parse_quote({"base_price": 45000}) is None
        assert parse_quote({"final_price": "32000"}) is None
        assert parse_quote({"final_price": True}) is None
        assert parse_quote(["final_price", 1]) is None

    def test_non_finite_final_price(self):
        assert parse_quote({"final_price": float("inf")}) is None


class TestCalculatePrice:
    @pytest.mark.asyncio
    async def test_success(self, store):
        def handler(request):
            assert request.url.path == "/calculate-price"
            return httpx.Response(200, json={"final_price": 32000})

        http, client = _client(handler, store)
        async with http:
            response = await client.calculate_price(PAYLOAD)

        assert response.outcome is PricingOutcome.READY
        assert response.quote.final_price == 32000

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, outcome",
        [(503, PricingOutcome.WARMING_UP), (404, PricingOutcome.NOT_FOUND), (500, PricingOutcome.FAILED)],
    )
    async def test_status_classification(self, store, status, outcome):
        http, client = _client(lambda request: httpx.Response(status), store)
        async with http:
            response = await client.calculate_price(PAYLOAD)
        assert response.outcome is outcome
        assert response.status_code == status

    @pytest.mark.asyncio
    async def test_error_detail_is_surfaced(self, store):
        http, client = _client(lambda request: httpx.Response(422, json={"detail": "Unknown model"}), store)
        async with http:
            response = await client.calculate_price(PAYLOAD)
        assert response.outcome is PricingOutcome.FAILED
        assert response.detail == "Unknown model"

    @pytest.mark.asyncio
    async def test_invalid_body_is_failure(self, store):
        http, client = _client(lambda request: httpx.Response(200, json={"price": 1}), store)
        async with http:
            response = await client.calculate_price(PAYLOAD)
        assert response.outcome is PricingOutcome.FAILED
        assert response.detail == "Invalid response from server"

    @pytest.mark.asyncio
    async def test_network_error_is_failure(self, store):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        http, client = _client(handler, store)
        async with http:
            response = await client.calculate_price(PAYLOAD)
        assert response.outcome is PricingOutcome.FAILED
        assert response.status_code is None


class TestFallback:
    @pytest.mark.asyncio
    async def test_fallback_adopted_when_primary_404s(self, store):
        def handler(request):
            if request.url.host == "primary.test":
                return httpx.Response(404)
            return httpx.Response(200, json={"final_price": 28000})

        http, client = _client(handler, store)
        async with http:
            response = await client.calculate_with_fallback(PAYLOAD)

        assert response.outcome is PricingOutcome.READY
        assert client.base_url == "https://fallback.test"
        assert store.get(AI_BASE_URL_KEY) == "https://fallback.test"

    @pytest.mark.asyncio
    async def test_fallback_tried_once(self, store):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(404)

        http, client = _client(handler, store)
        async with http:
            response = await client.calculate_with_fallback(PAYLOAD)

        assert response.outcome is PricingOutcome.NOT_FOUND
        assert hosts == ["primary.test", "fallback.test"]
        assert client.base_url == "https://primary.test"

    @pytest.mark.asyncio
    async def test_no_fallback_when_base_is_fallback(self, store):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(404)

        http, client = _client(handler, store, base="https://same.test", fallback="https://same.test")
        async with http:
            await client.calculate_with_fallback(PAYLOAD)
        assert hosts == ["same.test"]

    @pytest.mark.asyncio
    async def test_503_does_not_trigger_fallback(self, store):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(503)

        http, client = _client(handler, store)
        async with http:
            response = await client.calculate_with_fallback(PAYLOAD)
        assert response.outcome is PricingOutcome.WARMING_UP
        assert hosts == ["primary.test"]


class TestSupportFlag:
    def test_cached_fallback_url_is_kept(self, store):
        store.set(AI_BASE_URL_KEY, "https://fallback.test")
        client = PricingClient(httpx.AsyncClient(), store, "https://primary.test", "https://fallback.test")
        assert client.base_url == "https://fallback.test"

    def test_stale_cached_url_is_replaced_by_config(self, store):
        store.set(AI_BASE_URL_KEY, "https://old-deployment.test")
        client = PricingClient(httpx.AsyncClient(), store, "https://primary.test/", "https://fallback.test")
        assert client.base_url == "https://primary.test"
        assert store.get(AI_BASE_URL_KEY) == "https://primary.test"

    def test_unsupported_flag_is_per_base_url(self, store):
        client = PricingClient(httpx.AsyncClient(), store, "https://primary.test", "https://fallback.test")
        assert client.is_supported()

        client.mark_unsupported()

        assert not client.is_supported()
        assert store.get(f"{PRICING_SUPPORT_KEY_PREFIX}https://primary.test") == "false"
        other_store_view = PricingClient(httpx.AsyncClient(), store, "https://primary.test", "https://fallback.test")
        assert not other_store_view.is_supported()


class TestCheckHealth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, expected",
        [(200, BackendStatus.READY), (404, BackendStatus.UNKNOWN), (503, BackendStatus.UNKNOWN)],
    )
    async def test_health_status(self, store, status, expected):
        http, client = _client(lambda request: httpx.Response(status), store)
        async with http:
            assert await client.check_health() is expected

    @pytest.mark.asyncio
    async def test_health_network_error(self, store):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        http, client = _client(handler, store)
        async with http:
            assert await client.check_health() is BackendStatus.UNKNOWN
