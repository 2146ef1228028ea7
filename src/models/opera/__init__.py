"""OPERA Cloud API payload models."""

from src.models.opera.availability import (
    AvailabilityShape,
    FlatAvailability,
    FlatRoomRate,
    FlatRoomStay,
    GroupedAvailability,
    GroupedRate,
    GroupedRatePlan,
    GroupedRoomStay,
    OperaModel,
    RateAmount,
    RoomTypeRef,
)
from src.models.opera.reservation import HypermediaLink, ReservationCreatedResponse
from src.models.opera.token import TokenGrantResponse

__all__ = [
    "OperaModel",
    "AvailabilityShape",
    "FlatAvailability",
    "FlatRoomStay",
    "FlatRoomRate",
    "GroupedAvailability",
    "GroupedRoomStay",
    "GroupedRatePlan",
    "GroupedRate",
    "RateAmount",
    "RoomTypeRef",
    "HypermediaLink",
    "ReservationCreatedResponse",
    "TokenGrantResponse",
]
