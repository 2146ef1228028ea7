"""Booking intent and reservation result models."""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.booking.availability import DATE_PATTERN, stay_nights

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class GuestContact(BaseModel):
    """Primary guest contact details."""

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True, str_strip_whitespace=True)


class ReservationIntent(BaseModel):
    """What the guest selected in the booking flow."""

    check_in: str = Field(alias="checkIn", pattern=DATE_PATTERN)
    check_out: str = Field(alias="checkOut", pattern=DATE_PATTERN)
    room_type_code: str = Field(alias="roomTypeCode", min_length=1)
    rate_plan_code: str = Field(alias="ratePlanCode", min_length=1)
    adults: int = Field(ge=1)
    children: int = Field(default=0, ge=0)
    guest: GuestContact
    amount_before_tax: Decimal = Field(default=Decimal("0"), alias="amountBeforeTax", ge=0)
    currency_code: Optional[str] = Field(None, alias="currencyCode")
    promo_code: Optional[str] = Field(None, alias="promoCode")
    special_requests: Optional[str] = Field(None, alias="specialRequests")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def check_dates(self) -> "ReservationIntent":
        if stay_nights(self.check_in, self.check_out) is None:
            raise ValueError("Check-out date must be after check-in date")
        return self

    @property
    def nights(self) -> int:
        return stay_nights(self.check_in, self.check_out) or 0


class ReservationResult(BaseModel):
    """Identifiers parsed from the reservation creation response.

    Both identifiers are optional: the reservation exists upstream even when
    the hypermedia links could not be parsed.
    """

    reservation_id: Optional[str] = Field(None, alias="reservationId")
    confirmation_number: Optional[str] = Field(None, alias="confirmationNumber")
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey")
    raw: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def has_identifiers(self) -> bool:
        return bool(self.reservation_id or self.confirmation_number)
