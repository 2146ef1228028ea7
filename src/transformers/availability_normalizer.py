"""Normalizes OPERA availability payloads into canonical RawRoomRate records."""

from decimal import Decimal
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError
from structlog import get_logger

from src.clients.errors import ProtocolError
from src.models.booking import RawRoomRate
from src.models.opera.availability import (
    AvailabilityShape,
    FlatAvailability,
    FlatRoomRate,
    GroupedAvailability,
    GroupedRate,
    GroupedRoomStay,
    RateAmount,
)

logger = get_logger(__name__)

_shape_adapter = TypeAdapter(AvailabilityShape)


class AvailabilityNormalizer:
    """Absorbs OPERA availability schema drift.

    This is the only place that knows upstream availability field names.
    Supporting a new response shape means adding a member to
    ``AvailabilityShape`` and a branch in ``_from_shape``.
    """

    @staticmethod
    def _collect_room_stays(response: Any) -> list[Any]:
        """Gather room stays from every hotelAvailability entry and the top level.

        Raises:
            ProtocolError: If the containers are not lists/objects
        """
        if not isinstance(response, dict):
            raise ProtocolError("Availability response is not a JSON object", payload=response)

        room_stays: list[Any] = []

        hotel_availability = response.get("hotelAvailability") or []
        if not isinstance(hotel_availability, list):
            raise ProtocolError("hotelAvailability is not a list", payload=response)
        for hotel in hotel_availability:
            if not isinstance(hotel, dict):
                raise ProtocolError("hotelAvailability entry is not an object", payload=response)
            stays = hotel.get("roomStays") or []
            if not isinstance(stays, list):
                raise ProtocolError("roomStays is not a list", payload=response)
            room_stays.extend(stays)

        top_level = response.get("roomStays") or []
        if not isinstance(top_level, list):
            raise ProtocolError("roomStays is not a list", payload=response)
        room_stays.extend(top_level)

        return room_stays

    @staticmethod
    def detect_shape(response: Any) -> FlatAvailability | GroupedAvailability:
        """Parse a raw availability payload into its tagged shape.

        Any room stay carrying ``roomRates`` marks the payload as flat;
        otherwise it is grouped.

        Raises:
            ProtocolError: If the payload cannot be parsed as either shape
        """
        room_stays = AvailabilityNormalizer._collect_room_stays(response)
        is_flat = any(isinstance(stay, dict) and "roomRates" in stay for stay in room_stays)
        tagged = {"shape": "flat" if is_flat else "grouped", "room_stays": room_stays}

        try:
            return _shape_adapter.validate_python(tagged)
        except ValidationError as e:
            logger.error(
                "Availability response does not match a known shape",
                shape=tagged["shape"],
                error=str(e),
                payload=response,
            )
            raise ProtocolError(
                f"Unrecognized availability response ({tagged['shape']}): {str(e)}",
                payload=response,
            ) from e

    @staticmethod
    def _from_flat_rate(rate: FlatRoomRate) -> Optional[RawRoomRate]:
        total = rate.total or RateAmount()
        return AvailabilityNormalizer._build(
            room_type_code=rate.room_type,
            rate_plan_code=rate.rate_plan_code,
            amount_before_tax=total.amount_before_tax,
            amount_after_tax=total.amount_after_tax,
            currency_code=total.currency_code,
            start=rate.start,
            end=rate.end,
        )

    @staticmethod
    def _from_grouped_rate(
        stay: GroupedRoomStay,
        rate_plan_code: Optional[str],
        rate: GroupedRate,
    ) -> Optional[RawRoomRate]:
        total = rate.total or RateAmount()
        base = rate.base or RateAmount()
        return AvailabilityNormalizer._build(
            room_type_code=stay.room_type.room_type_code if stay.room_type else None,
            rate_plan_code=rate_plan_code,
            amount_before_tax=(
                total.amount_before_tax
                if total.amount_before_tax is not None
                else base.amount_before_tax
            ),
            amount_after_tax=(
                total.amount_after_tax
                if total.amount_after_tax is not None
                else base.amount_after_tax
            ),
            currency_code=total.currency_code or base.currency_code,
            start=rate.start or stay.arrival_date,
            end=rate.end or stay.departure_date,
        )

    @staticmethod
    def _build(
        room_type_code: Optional[str],
        rate_plan_code: Optional[str],
        amount_before_tax: Optional[Decimal],
        amount_after_tax: Optional[Decimal],
        currency_code: Optional[str],
        start: Optional[str],
        end: Optional[str],
    ) -> Optional[RawRoomRate]:
        """Create a RawRoomRate, or None when an identifying field is missing."""
        if not room_type_code or not rate_plan_code or amount_before_tax is None:
            logger.warning(
                "Skipping incomplete room rate",
                room_type_code=room_type_code,
                rate_plan_code=rate_plan_code,
                amount_before_tax=str(amount_before_tax) if amount_before_tax is not None else None,
            )
            return None

        return RawRoomRate(
            room_type_code=room_type_code,
            rate_plan_code=rate_plan_code,
            amount_before_tax=amount_before_tax,
            amount_after_tax=amount_after_tax,
            currency_code=currency_code,
            start=start,
            end=end,
        )

    @staticmethod
    def _from_shape(shape: FlatAvailability | GroupedAvailability) -> list[RawRoomRate]:
        candidates: list[Optional[RawRoomRate]] = []

        if isinstance(shape, FlatAvailability):
            for stay in shape.room_stays:
                for rate in stay.room_rates:
                    candidates.append(AvailabilityNormalizer._from_flat_rate(rate))
        else:
            for stay in shape.room_stays:
                for rate_plan in stay.rate_plans:
                    for rate in rate_plan.rates:
                        candidates.append(
                            AvailabilityNormalizer._from_grouped_rate(stay, rate_plan.rate_plan_code, rate)
                        )

        return [rate for rate in candidates if rate is not None]

    @staticmethod
    def normalize(response: Any) -> list[RawRoomRate]:
        """Flatten an availability payload of any known shape.

        Args:
            response: Parsed JSON from the availability endpoint

        Returns:
            RawRoomRate records in upstream order

        Raises:
            ProtocolError: If the payload structure is not recognized
        """
        shape = AvailabilityNormalizer.detect_shape(response)
        raw_rates = AvailabilityNormalizer._from_shape(shape)

        logger.info(
            "Normalized availability response",
            shape=shape.shape,
            room_stay_count=len(shape.room_stays),
            raw_rate_count=len(raw_rates),
        )
        return raw_rates
