"""Business services package."""

from src.services.booking_service import BookingService
from src.services.token_inspector import TokenInfo, inspect_token

__all__ = [
    "BookingService",
    "TokenInfo",
    "inspect_token",
]
