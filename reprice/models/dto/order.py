from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class PhoneSelection(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    variant: str | None = Field(default=None, max_length=100)
    condition: str | None = None
    price: int = Field(ge=0)


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(min_length=1, max_length=2000)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    pincode: str = Field(min_length=1, max_length=10)
    latitude: Decimal | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: Decimal | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng"))
    phone: PhoneSelection
    pickup_date: date = Field(alias="pickupDate")
    time_slot: str | None = Field(default=None, alias="timeSlot", max_length=50)
    payment_method: str = Field(alias="paymentMethod", min_length=1, max_length=50)

    @field_validator("pincode")
    @classmethod
    def validate_pincode(cls, v: str) -> str:
        v = v.strip()
        if not v.isdigit():
            raise ValueError("pincode must contain digits only")
        return v


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    address_id: int
    agent_id: int | None = None
    phone_model: str
    phone_variant: str | None = None
    phone_condition: str | None = None
    price: int
    pickup_date: date
    time_slot: str | None = None
    payment_method: str
    status: str
    created_at: datetime | None = None


class OrderEnvelope(BaseModel):
    order: OrderResponse


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class ServiceabilityResponse(BaseModel):
    success: bool
    serviceable: bool
    pincode: str
