import math
import time
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


def to_price(value: object) -> int:
    """Coerce a remote or CSV price into whole rupees. Anything unparseable is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value if value is not None else "").strip())
        except ValueError:
            return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(round(number))


class PhoneListing(BaseModel):
    brand: str
    model: str
    variant: str | None = None
    price: int = 0
    image: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: object) -> int:
        return to_price(v)

    @field_validator("variant", "image", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ScreenCondition(str, Enum):
    GOOD = "good"
    MINOR_SCRATCHES = "minor-scratches"
    MAJOR_SCRATCHES = "major-scratches"
    CRACKED = "cracked"
    SHATTERED = "shattered"

    @property
    def display_name(self) -> str:
        return _SCREEN_CONDITION_NAMES[self]


_SCREEN_CONDITION_NAMES = {
    ScreenCondition.GOOD: "Good",
    ScreenCondition.MINOR_SCRATCHES: "Minor Scratches",
    ScreenCondition.MAJOR_SCRATCHES: "Major Scratches",
    ScreenCondition.CRACKED: "Cracked",
    ScreenCondition.SHATTERED: "Shattered",
}


class ConditionAnswers(BaseModel):
    """The five condition facts a seller supplies. Unanswered questions stay None."""

    model_config = ConfigDict(frozen=True)

    screen_condition: ScreenCondition | None = None
    turns_on: bool | None = None
    has_box: bool | None = None
    has_bill: bool | None = None
    under_warranty: bool | None = None

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, name) is not None for name in type(self).model_fields)


class Quote(BaseModel):
    final_price: float
    base_price: float | None = None
    logs: list[str] = Field(default_factory=list)


class CacheEntry(BaseModel, Generic[T]):
    ts: float
    data: T

    def is_fresh(self, ttl: float, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current - self.ts < ttl
