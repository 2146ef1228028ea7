"""Internal booking models (independent of the OPERA response shapes)."""

from src.models.booking.availability import (
    AvailabilityDiagnosis,
    AvailabilityQuery,
    EnrichedRate,
    EnrichedRoom,
    RawRoomRate,
    stay_nights,
)
from src.models.booking.reservation import (
    GuestContact,
    ReservationIntent,
    ReservationResult,
)
from src.models.booking.token import AccessToken

__all__ = [
    "AccessToken",
    "AvailabilityQuery",
    "AvailabilityDiagnosis",
    "RawRoomRate",
    "EnrichedRate",
    "EnrichedRoom",
    "GuestContact",
    "ReservationIntent",
    "ReservationResult",
    "stay_nights",
]
