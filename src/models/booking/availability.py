"""Canonical availability models: search query, raw room rates and the enriched room list."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.catalog import DEFAULT_LANGUAGE, Language, LocalizedText, PackageType, View

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
MAX_ADULTS = 12
MAX_CHILDREN = 8


def stay_nights(start: Optional[str], end: Optional[str]) -> Optional[int]:
    """Number of nights between two YYYY-MM-DD dates, or None if unknown/invalid."""
    if not start or not end:
        return None
    try:
        nights = (date.fromisoformat(end[:10]) - date.fromisoformat(start[:10])).days
    except ValueError:
        return None
    return nights if nights > 0 else None


class AvailabilityQuery(BaseModel):
    """Validated availability search parameters."""

    check_in: str = Field(alias="checkIn", pattern=DATE_PATTERN)
    check_out: str = Field(alias="checkOut", pattern=DATE_PATTERN)
    adults: int = Field(ge=1, le=MAX_ADULTS)
    children: int = Field(default=0, ge=0, le=MAX_CHILDREN)
    rate_plan_code: Optional[str] = Field(None, alias="ratePlanCode")
    promo_code: Optional[str] = Field(None, alias="promoCode")
    language: Language = DEFAULT_LANGUAGE

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("rate_plan_code", "promo_code", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty query parameters as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_dates(self) -> "AvailabilityQuery":
        try:
            check_in = date.fromisoformat(self.check_in)
            check_out = date.fromisoformat(self.check_out)
        except ValueError as e:
            raise ValueError(f"Invalid date: {str(e)}") from e
        if check_in < date.today():
            raise ValueError("Check-in date cannot be in the past")
        if check_out <= check_in:
            raise ValueError("Check-out date must be after check-in date")
        return self

    @property
    def nights(self) -> int:
        return stay_nights(self.check_in, self.check_out) or 0


class RawRoomRate(BaseModel):
    """One room-type / rate-plan price, independent of the upstream response shape."""

    room_type_code: str = Field(alias="roomTypeCode")
    rate_plan_code: str = Field(alias="ratePlanCode")
    amount_before_tax: Decimal = Field(alias="amountBeforeTax")
    amount_after_tax: Optional[Decimal] = Field(None, alias="amountAfterTax")
    currency_code: Optional[str] = Field(None, alias="currencyCode")
    start: Optional[str] = None
    end: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class EnrichedRate(BaseModel):
    """A raw rate joined with its rate plan and package metadata."""

    rate_plan_code: str = Field(alias="ratePlanCode")
    rate_plan_name: LocalizedText = Field(alias="ratePlanName")
    package: PackageType
    package_label: LocalizedText = Field(alias="packageLabel")
    package_color: str = Field(alias="packageColor")
    includes: list[str] = Field(default_factory=list)
    includes_labels: dict[str, list[str]] = Field(default_factory=dict, alias="includesLabels")
    amenities: list[str] = Field(
        default_factory=list,
        description="Amenity labels in the requested language",
    )
    amount_before_tax: Decimal = Field(alias="amountBeforeTax")
    amount_after_tax: Decimal = Field(alias="amountAfterTax")
    currency_code: str = Field(alias="currencyCode")
    nights: Optional[int] = None
    nightly_rate: Optional[Decimal] = Field(None, alias="nightlyRate")
    sort_order: int = Field(alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)


class EnrichedRoom(BaseModel):
    """A catalog room type with every rate that survived enrichment."""

    room_type_code: str = Field(alias="roomTypeCode")
    room_type_name: LocalizedText = Field(alias="roomTypeName")
    bedrooms: int
    max_adults: int = Field(alias="maxAdults")
    max_children: int = Field(alias="maxChildren")
    beds: list[str] = Field(default_factory=list)
    location: str = ""
    view: View
    view_label: LocalizedText = Field(alias="viewLabel")
    rates: list[EnrichedRate] = Field(default_factory=list)
    available: bool = False
    sort_order: int = Field(alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def lowest_rate(self) -> Optional[EnrichedRate]:
        return self.rates[0] if self.rates else None


class AvailabilityDiagnosis(BaseModel):
    """Catalog coverage of an availability response."""

    room_types_in_response: list[str] = Field(default_factory=list, alias="roomTypesInResponse")
    rate_plans_in_response: list[str] = Field(default_factory=list, alias="ratePlansInResponse")
    matching_room_types: list[str] = Field(default_factory=list, alias="matchingRoomTypes")
    missing_room_types: list[str] = Field(default_factory=list, alias="missingRoomTypes")
    matching_rate_plans: list[str] = Field(default_factory=list, alias="matchingRatePlans")
    missing_rate_plans: list[str] = Field(default_factory=list, alias="missingRatePlans")
    raw_rate_count: int = Field(default=0, alias="rawRateCount")
    enriched_room_count: int = Field(default=0, alias="enrichedRoomCount")
    raw_response: dict = Field(default_factory=dict, alias="rawResponse")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def fully_mapped(self) -> bool:
        return not self.missing_room_types and not self.missing_rate_plans
