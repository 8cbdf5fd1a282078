"""
Wiring for the client side of reprice.

`ClientContext` owns the single `httpx.AsyncClient` and the components built
on it. Create one per client session and close it when done::

    async with ClientContext.create() as ctx:
        listings = await ctx.search.resolve("iphone 13")
"""

import logging

import httpx

from reprice.client.backend import BackendClient
from reprice.client.catalog import LocalCatalogCache
from reprice.client.models import PhoneListing
from reprice.client.popular import PopularPhones
from reprice.client.pricing import PricingClient
from reprice.client.quote import QuoteSession
from reprice.client.search import SearchResolver
from reprice.client.store import JsonFileStore, KeyValueStore
from reprice.client.variants import VariantOption, build_variant_options, strip_brand_prefix
from reprice.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class ClientContext:
    def __init__(
        self,
        http: httpx.AsyncClient,
        store: KeyValueStore,
        catalog: LocalCatalogCache,
        search: SearchResolver,
        pricing: PricingClient,
        backend: BackendClient,
        popular: PopularPhones,
    ):
        self.http = http
        self.store = store
        self.catalog = catalog
        self.search = search
        self.pricing = pricing
        self.backend = backend
        self.popular = popular
        self._sessions: set[QuoteSession] = set()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ClientContext":
        if settings is None:
            from reprice.core.config import settings as default_settings
            settings = default_settings
        if store is None:
            store = JsonFileStore(settings.client_state_path)

        http = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, transport=transport)
        catalog = LocalCatalogCache(settings.catalog_source, settings.catalog_ttl_seconds, http=http)
        search = SearchResolver(http, catalog, store, settings.ai_api_url)
        pricing = PricingClient(http, store, settings.ai_api_url, settings.ai_fallback_url)
        backend = BackendClient(http, store, settings.backend_api_url)
        popular = PopularPhones(search, store)
        logger.debug(
            "Client context ready (backend=%s, pricing=%s)",
            settings.backend_api_url, pricing.base_url,
        )
        return cls(http, store, catalog, search, pricing, backend, popular)

    def open_quote_session(self, model_name: str, variant: str | None = None) -> QuoteSession:
        session = QuoteSession(self.pricing, model_name, variant)
        self._sessions.add(session)
        return session

    async def resolve_variants(
        self,
        brand: str,
        model_name: str,
        current_variant: str | None = None,
        current_price: int = 0,
    ) -> list[VariantOption]:
        """Variant options for one model, looked up through search."""
        listings: list[PhoneListing] = await self.search.resolve(
            f"{brand} {strip_brand_prefix(model_name, brand)}"
        )
        return build_variant_options(listings, brand, model_name, current_variant, current_price)

    async def aclose(self) -> None:
        """Stop every quote session opened here, then close the HTTP client."""
        sessions, self._sessions = self._sessions, set()
        for session in sessions:
            session.close()
        for session in sessions:
            await session.wait_idle()
        await self.http.aclose()

    async def __aenter__(self) -> "ClientContext":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
