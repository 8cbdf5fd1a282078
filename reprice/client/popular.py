import logging
import time
from collections.abc import Callable

from reprice.client.models import CacheEntry, PhoneListing
from reprice.client.search import SearchResolver
from reprice.client.store import KeyValueStore, read_entry, write_entry

logger = logging.getLogger(__name__)

POPULAR_CACHE_KEY_PREFIX = "reprice.popularPhones.v1."
DEFAULT_LIMIT = 10
DEFAULT_TTL = 24 * 60 * 60.0

SEED_QUERIES = (
    "iphone",
    "samsung",
    "oneplus",
    "oppo",
    "vivo",
    "xiaomi",
    "realme",
    "pixel",
    "motorola",
    "nokia",
    "redmi",
    "iqoo",
    "nothing",
)

PopularCacheEntry = CacheEntry[list[PhoneListing]]


def cache_key(user_id: int | str | None = None) -> str:
    return f"{POPULAR_CACHE_KEY_PREFIX}{user_id if user_id is not None else 'guest'}"


class PopularPhones:
    """Home-page shortlist: one listing per brand, built from seed searches."""

    def __init__(
        self,
        resolver: SearchResolver,
        store: KeyValueStore,
        limit: int = DEFAULT_LIMIT,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._resolver = resolver
        self._store = store
        self.limit = limit
        self.ttl = ttl
        self._clock = clock

    async def load(self, user_id: int | str | None = None) -> list[PhoneListing]:
        key = cache_key(user_id)
        cached = read_entry(self._store, key, PopularCacheEntry)
        if cached is not None and cached.data and cached.is_fresh(self.ttl, self._clock()):
            return cached.data

        picked: list[PhoneListing] = []
        seen_brands: set[str] = set()
        for seed in SEED_QUERIES:
            if len(picked) >= self.limit:
                break
            try:
                results = await self._resolver.resolve(seed)
            except Exception:
                logger.exception("Popular phones seed %r failed", seed)
                continue
            for listing in results:
                brand = listing.brand.strip().lower()
                if brand and brand not in seen_brands:
                    seen_brands.add(brand)
                    picked.append(listing)
                    break

        if picked:
            write_entry(self._store, key, PopularCacheEntry(ts=self._clock(), data=picked))
        return picked
