import re

from pydantic import BaseModel

from reprice.client.catalog import normalize_text
from reprice.client.models import PhoneListing

_PAIR_RE = re.compile(r"^(\d+)(GB)?/(\d+)(GB)?$", re.IGNORECASE)
_STORAGE_ONLY_RE = re.compile(r"^(\d+)(GB)?$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class VariantOption(BaseModel):
    key: str
    raw_variant: str
    ram_gb: int | None = None
    storage_gb: int | None = None
    price: int = 0

    @property
    def label(self) -> str:
        return variant_label(self)


def format_variant(value: object) -> str | None:
    """Clean up a variant label; "8 GB / 128GB" becomes "8/128"."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw or raw == "N/A":
        return None
    match = _PAIR_RE.match(_WHITESPACE_RE.sub("", raw))
    if match:
        return f"{match.group(1)}/{match.group(3)}"
    return raw


def parse_variant(value: str | None) -> tuple[int | None, int | None]:
    """Return (ram_gb, storage_gb) parsed from a variant label."""
    compact = _WHITESPACE_RE.sub("", str(value or ""))
    if not compact:
        return None, None
    match = _PAIR_RE.match(compact)
    if match:
        return int(match.group(1)), int(match.group(3))
    match = _STORAGE_ONLY_RE.match(compact)
    if match:
        return None, int(match.group(1))
    return None, None


def variant_label(option: VariantOption) -> str:
    if option.ram_gb is not None and option.storage_gb is not None:
        return f"{option.ram_gb}GB RAM / {option.storage_gb}GB"
    if option.storage_gb is not None:
        return f"{option.storage_gb}GB"
    return option.raw_variant


def strip_brand_prefix(model: str, brand: str) -> str:
    m = (model or "").strip()
    b = (brand or "").strip()
    if m and b and m.lower().startswith(b.lower()):
        return m[len(b):].strip()
    return m


def make_option(raw_variant: str, price: int) -> VariantOption:
    ram_gb, storage_gb = parse_variant(raw_variant)
    return VariantOption(
        key=raw_variant.lower(),
        raw_variant=raw_variant,
        ram_gb=ram_gb,
        storage_gb=storage_gb,
        price=price,
    )


def build_variant_options(
    listings: list[PhoneListing],
    brand: str,
    model_name: str,
    current_variant: str | None = None,
    current_price: int = 0,
) -> list[VariantOption]:
    """Collect the RAM/storage options of one model from a search result set.

    Only listings of the same brand and (brand-stripped) model count. Duplicate
    variants keep their highest price. The variant the user arrived with is
    always offered, even when search did not return it.
    """
    wanted_brand = normalize_text(brand)
    wanted_model = normalize_text(strip_brand_prefix(model_name, brand))
    current = format_variant(current_variant)

    options: dict[str, VariantOption] = {}
    for listing in listings:
        variant = format_variant(listing.variant)
        if not variant or listing.price <= 0:
            continue
        if normalize_text(listing.brand) != wanted_brand:
            continue
        if normalize_text(strip_brand_prefix(listing.model, brand)) != wanted_model:
            continue

        option = make_option(variant, listing.price)
        existing = options.get(option.key)
        if existing is None or option.price > existing.price:
            options[option.key] = option

    if current and current.lower() not in options:
        options[current.lower()] = make_option(current, current_price)

    return sorted(
        options.values(),
        key=lambda o: (o.ram_gb or 0, o.storage_gb or 0, o.price),
    )


def default_selection(options: list[VariantOption], current_variant: str | None = None) -> str | None:
    """Pick the variant to preselect, or None when the user has to choose."""
    current = format_variant(current_variant)
    if current:
        key = current.lower()
        if any(o.key == key for o in options):
            return key
    if len(options) == 1:
        return options[0].key
    return None
