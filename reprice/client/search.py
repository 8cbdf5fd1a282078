import asyncio
import logging
import time
from collections.abc import Callable

import httpx
from pydantic import ValidationError

from reprice.client import catalog
from reprice.client.catalog import LocalCatalogCache, normalize_text
from reprice.client.models import CacheEntry, PhoneListing
from reprice.client.store import KeyValueStore, read_entry, write_entry

logger = logging.getLogger(__name__)

# Bump to invalidate persisted search results after a dataset or logic change.
SEARCH_CACHE_VERSION = 2
SPARSE_RESULT_THRESHOLD = 20
DEFAULT_TTL = 24 * 60 * 60.0
WARMUP_TIMEOUT = 3.5

SearchCacheEntry = CacheEntry[list[PhoneListing]]


def listing_key(listing: PhoneListing) -> str:
    return "|".join((
        normalize_text(listing.brand),
        normalize_text(listing.model),
        normalize_text(listing.variant or ""),
    ))


def merge_listings(primary: list[PhoneListing], secondary: list[PhoneListing]) -> list[PhoneListing]:
    """Union two result sets keyed by normalized brand/model/variant.

    The first occurrence of a key keeps its slot and fields. On collision the
    higher of the two prices wins and a missing image is filled from the
    other side.
    """
    merged: dict[str, PhoneListing] = {}
    for listing in [*primary, *secondary]:
        key = listing_key(listing)
        existing = merged.get(key)
        if existing is None:
            merged[key] = listing
            continue
        merged[key] = existing.model_copy(update={
            "price": max(existing.price, listing.price),
            "image": existing.image or listing.image,
        })
    return list(merged.values())


def normalize_query(query: str) -> str:
    return query.strip().lower()


def storage_key(query_key: str) -> str:
    return f"phoneSearch:v{SEARCH_CACHE_VERSION}:{query_key}"


class SearchResolver:
    """Resolves free-text phone searches against the live API with a local fallback.

    One instance lives for the whole client session and owns the in-memory
    cache and the map of in-flight requests.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        local_catalog: LocalCatalogCache,
        store: KeyValueStore,
        base_url: str,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http
        self._catalog = local_catalog
        self._store = store
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self._clock = clock
        self._memory: dict[str, SearchCacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[list[PhoneListing]]] = {}

    def _cached(self, query_key: str) -> SearchCacheEntry | None:
        now = self._clock()
        entry = self._memory.get(query_key)
        if entry is not None and entry.is_fresh(self.ttl, now):
            return entry

        entry = read_entry(self._store, storage_key(query_key), SearchCacheEntry)
        if entry is not None and entry.is_fresh(self.ttl, now):
            self._memory[query_key] = entry
            return entry
        return None

    async def resolve(self, query: str) -> list[PhoneListing]:
        query_key = normalize_query(query)
        if not query_key:
            return []

        cached = self._cached(query_key)
        if cached is not None:
            return cached.data

        task = self._in_flight.get(query_key)
        if task is None:
            task = asyncio.create_task(self._fetch(query, query_key))
            self._in_flight[query_key] = task
            task.add_done_callback(lambda _t, k=query_key: self._in_flight.pop(k, None))
        # Shield so one caller giving up does not cancel the shared request.
        return await asyncio.shield(task)

    async def _local(self, query: str) -> list[PhoneListing]:
        rows = await self._catalog.load()
        return catalog.search(rows, query)

    def _parse_remote(self, payload: object) -> list[PhoneListing]:
        if not isinstance(payload, list):
            return []
        listings = []
        for item in payload:
            try:
                listings.append(PhoneListing.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed search row: %r", item)
        return listings

    async def _fetch(self, query: str, query_key: str) -> list[PhoneListing]:
        try:
            resp = await self._http.get(f"{self.base_url}/search-phones", params={"q": query})
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            # 503 is common while the search service spins up
            logger.warning("search-phones failed for %r, using local catalog: %s", query, e)
            data = await self._local(query)
        else:
            remote = self._parse_remote(payload)
            if not remote:
                data = await self._local(query)
            elif len(remote) < SPARSE_RESULT_THRESHOLD:
                local = await self._local(query)
                data = merge_listings(remote, local) if local else remote
            else:
                data = remote

        entry = SearchCacheEntry(ts=self._clock(), data=data)
        self._memory[query_key] = entry
        write_entry(self._store, storage_key(query_key), entry)
        return data

    async def warmup(self) -> None:
        """Nudge a sleeping search service awake. Failures are irrelevant here."""
        try:
            await self._http.get(f"{self.base_url}/health", timeout=WARMUP_TIMEOUT)
        except httpx.HTTPError:
            pass
