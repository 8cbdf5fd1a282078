import logging
import math
from enum import Enum
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from reprice.client.models import Quote
from reprice.client.store import KeyValueStore

logger = logging.getLogger(__name__)

AI_BASE_URL_KEY = "reprice.aiBaseUrl.v1"
PRICING_SUPPORT_KEY_PREFIX = "reprice.aiPricingSupported.v1."

CALCULATE_TIMEOUT = 25.0
HEALTH_TIMEOUT = 4.0


class PricingOutcome(str, Enum):
    READY = "ready"
    WARMING_UP = "warming_up"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class BackendStatus(str, Enum):
    UNKNOWN = "unknown"
    READY = "ready"
    INITIALIZING = "initializing"
    DOWN = "down"


class PricingResponse(BaseModel):
    outcome: PricingOutcome
    status_code: int | None = None
    quote: Quote | None = None
    detail: str | None = None


def _finite_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def parse_quote(payload: object) -> Quote | None:
    """Build a Quote from a calculate-price body, or None if final_price is unusable."""
    if not isinstance(payload, dict):
        return None
    final_price = _finite_number(payload.get("final_price"))
    if final_price is None:
        return None
    logs = payload.get("logs")
    return Quote(
        final_price=final_price,
        base_price=_finite_number(payload.get("base_price")),
        logs=[str(line) for line in logs] if isinstance(logs, list) else [],
    )


def _error_detail(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return None


@runtime_checkable
class PricingClientProtocol(Protocol):
    def is_supported(self) -> bool: ...
    def mark_unsupported(self) -> None: ...
    async def calculate_with_fallback(self, payload: dict) -> PricingResponse: ...
    async def check_health(self) -> BackendStatus: ...


class PricingClient:
    """HTTP client for the external AI pricing service.

    Remembers which base URL last worked and which base URLs are known not to
    serve calculate-price, both in the client store.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: KeyValueStore,
        base_url: str,
        fallback_url: str,
    ):
        self._http = http
        self._store = store
        self.fallback_url = fallback_url.rstrip("/")
        base_url = base_url.rstrip("/")
        # A persisted URL only wins when it is still one of the configured pair.
        cached = store.get(AI_BASE_URL_KEY)
        if not isinstance(cached, str) or cached.rstrip("/") not in (base_url, self.fallback_url):
            cached = None
        self._base_url = (cached or base_url).rstrip("/")
        self._store.set(AI_BASE_URL_KEY, self._base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _use_base_url(self, base_url: str) -> None:
        self._base_url = base_url
        self._store.set(AI_BASE_URL_KEY, base_url)

    def _support_key(self) -> str:
        return f"{PRICING_SUPPORT_KEY_PREFIX}{self._base_url}"

    def is_supported(self) -> bool:
        return self._store.get(self._support_key()) != "false"

    def mark_unsupported(self) -> None:
        self._store.set(self._support_key(), "false")

    async def calculate_price(self, payload: dict, base_url: str | None = None) -> PricingResponse:
        url = f"{base_url or self._base_url}/calculate-price"
        try:
            resp = await self._http.post(url, json=payload, timeout=CALCULATE_TIMEOUT)
        except httpx.HTTPError as e:
            logger.warning("calculate-price request to %s failed: %s", url, e)
            return PricingResponse(outcome=PricingOutcome.FAILED, detail=str(e) or type(e).__name__)

        if resp.status_code == 404:
            return PricingResponse(outcome=PricingOutcome.NOT_FOUND, status_code=404)
        if resp.status_code == 503:
            return PricingResponse(outcome=PricingOutcome.WARMING_UP, status_code=503)
        if not resp.is_success:
            return PricingResponse(
                outcome=PricingOutcome.FAILED,
                status_code=resp.status_code,
                detail=_error_detail(resp) or f"Server error: {resp.status_code}",
            )

        try:
            quote = parse_quote(resp.json())
        except ValueError:
            quote = None
        if quote is None:
            logger.warning("Invalid price data from %s", url)
            return PricingResponse(
                outcome=PricingOutcome.FAILED,
                status_code=resp.status_code,
                detail="Invalid response from server",
            )
        return PricingResponse(outcome=PricingOutcome.READY, status_code=resp.status_code, quote=quote)

    async def calculate_with_fallback(self, payload: dict) -> PricingResponse:
        """Price a device, trying the fallback base URL once if the primary 404s."""
        response = await self.calculate_price(payload)
        if response.outcome is not PricingOutcome.NOT_FOUND or self._base_url == self.fallback_url:
            return response

        logger.warning(
            "calculate-price not served at %s, trying fallback %s",
            self._base_url, self.fallback_url,
        )
        fallback = await self.calculate_price(payload, base_url=self.fallback_url)
        if fallback.outcome is PricingOutcome.READY:
            # The configured base was a deployment without pricing; stick with the fallback.
            self._use_base_url(self.fallback_url)
        return fallback

    async def check_health(self, timeout: float = HEALTH_TIMEOUT) -> BackendStatus:
        try:
            resp = await self._http.get(f"{self._base_url}/health", timeout=timeout)
        except httpx.HTTPError:
            return BackendStatus.UNKNOWN
        # Many deployments have no /health route; that says nothing about pricing.
        return BackendStatus.READY if resp.is_success else BackendStatus.UNKNOWN
