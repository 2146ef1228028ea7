"""Pydantic models for the OPERA availability response shapes.

Two incompatible shapes have been observed across API revisions:

- flat: ``hotelAvailability[].roomStays[].roomRates[]`` where every room rate
  carries its own ``roomType`` and ``ratePlanCode`` plus one ``total`` block.
- grouped: ``roomStays[]`` each with ``roomType.roomTypeCode`` and
  ``ratePlans[].rates[]``.

Both are modelled here as members of a tagged union; only the availability
normalizer consumes them.
"""

from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperaModel(BaseModel):
    """Base for OPERA payloads: tolerant of unknown fields."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class RateAmount(OperaModel):
    """Amount block used by ``total`` and ``base``."""

    amount_before_tax: Optional[Decimal] = Field(None, alias="amountBeforeTax")
    amount_after_tax: Optional[Decimal] = Field(None, alias="amountAfterTax")
    currency_code: Optional[str] = Field(None, alias="currencyCode")


class FlatRoomRate(OperaModel):
    """Room rate record of the flat shape."""

    room_type: Optional[str] = Field(None, alias="roomType")
    rate_plan_code: Optional[str] = Field(None, alias="ratePlanCode")
    total: Optional[RateAmount] = None
    start: Optional[str] = None
    end: Optional[str] = None


class FlatRoomStay(OperaModel):
    room_rates: list[FlatRoomRate] = Field(default_factory=list, alias="roomRates")

    @field_validator("room_rates", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class RoomTypeRef(OperaModel):
    room_type_code: Optional[str] = Field(None, alias="roomTypeCode")


class GroupedRate(OperaModel):
    """One rate entry of a grouped rate plan."""

    base: Optional[RateAmount] = None
    total: Optional[RateAmount] = None
    start: Optional[str] = None
    end: Optional[str] = None


class GroupedRatePlan(OperaModel):
    rate_plan_code: Optional[str] = Field(None, alias="ratePlanCode")
    rates: list[GroupedRate] = Field(default_factory=list)

    @field_validator("rates", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class GroupedRoomStay(OperaModel):
    """Room stay of the grouped shape: one room type, many rate plans."""

    room_type: Optional[RoomTypeRef] = Field(None, alias="roomType")
    rate_plans: list[GroupedRatePlan] = Field(default_factory=list, alias="ratePlans")
    arrival_date: Optional[str] = Field(None, alias="arrivalDate")
    departure_date: Optional[str] = Field(None, alias="departureDate")

    @field_validator("rate_plans", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class FlatAvailability(OperaModel):
    shape: Literal["flat"] = "flat"
    room_stays: list[FlatRoomStay] = Field(default_factory=list)


class GroupedAvailability(OperaModel):
    shape: Literal["grouped"] = "grouped"
    room_stays: list[GroupedRoomStay] = Field(default_factory=list)


AvailabilityShape = Annotated[
    Union[FlatAvailability, GroupedAvailability],
    Field(discriminator="shape"),
]
