import asyncio
import csv
import io
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

import httpx

from reprice.client.models import PhoneListing

logger = logging.getLogger(__name__)

MAX_RESULTS = 50
EXACT_PHRASE_BONUS = 100

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_text(value: str | None) -> str:
    """Lower-case and collapse every non-alphanumeric run to a single space."""
    return _NON_ALNUM_RE.sub(" ", str(value or "").lower()).strip()


def _parse_rows(text: str) -> list[dict[str, str]]:
    rows = []
    for raw in csv.DictReader(io.StringIO(text)):
        # Ragged lines put overflow cells under a None key; drop them.
        row = {
            key.strip().lower(): value.strip()
            for key, value in raw.items()
            if isinstance(key, str) and isinstance(value, str)
        }
        if not row.get("brand") or not row.get("model"):
            continue
        rows.append(row)
    return rows


class LocalCatalogCache:
    """Bundled phone dataset used when the live search API is down or sparse.

    The file is read at most once per TTL window. A failed or empty read is
    cached as an empty list for the same window so a missing file is not
    retried on every keystroke.
    """

    def __init__(
        self,
        source: str | Path,
        ttl: float,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = str(source)
        self.ttl = ttl
        self._http = http
        self._clock = clock
        self._rows: list[dict[str, str]] = []
        self._loaded_at: float | None = None

    @property
    def _is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    async def _read_text(self) -> str:
        if self._is_remote:
            if self._http is None:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    resp = await client.get(self.source)
            else:
                resp = await self._http.get(self.source, timeout=10.0)
            resp.raise_for_status()
            return resp.text
        return await asyncio.to_thread(Path(self.source).read_text, encoding="utf-8")

    async def load(self) -> list[dict[str, str]]:
        if self._loaded_at is not None and self._clock() - self._loaded_at < self.ttl:
            return self._rows

        try:
            text = await self._read_text()
        except (OSError, UnicodeDecodeError, httpx.HTTPError) as e:
            logger.warning("Local phone catalog unavailable at %s: %s", self.source, e)
            text = ""

        try:
            rows = _parse_rows(text) if text.strip() else []
        except csv.Error as e:
            logger.warning("Local phone catalog at %s is not valid CSV: %s", self.source, e)
            rows = []

        self._rows = rows
        self._loaded_at = self._clock()
        logger.info("Loaded %d rows from local phone catalog", len(rows))
        return self._rows

    def invalidate(self) -> None:
        self._loaded_at = None


def search(rows: list[dict[str, str]], query: str, limit: int = MAX_RESULTS) -> list[PhoneListing]:
    """Rank catalog rows against a free-text query.

    A row needs at least one query token inside its normalized
    "brand model variant" text. Rows containing the whole normalized query
    get a bonus of 100 on top of their token count.
    """
    q = normalize_text(query)
    if not q:
        return []
    tokens = [t for t in q.split(" ") if t]

    scored: list[tuple[int, PhoneListing]] = []
    for row in rows:
        brand = row.get("brand", "").strip()
        model = row.get("model", "").strip()
        variant = row.get("variant", "").strip()
        full = normalize_text(f"{brand} {model} {variant}")
        if not full:
            continue

        token_matches = sum(1 for t in tokens if t in full)
        if token_matches == 0:
            continue

        score = (EXACT_PHRASE_BONUS if q in full else 0) + token_matches
        scored.append((
            score,
            PhoneListing(
                brand=brand,
                model=model,
                variant=variant or None,
                price=row.get("price"),
                image=row.get("image") or row.get("link") or None,
            ),
        ))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [listing for _, listing in scored[:limit]]
