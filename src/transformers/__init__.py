"""Data transformation package."""

from src.transformers.availability_enricher import AvailabilityEnricher, EnrichmentResult
from src.transformers.availability_normalizer import AvailabilityNormalizer
from src.transformers.reservation_mapper import ReservationMapper

__all__ = [
    "AvailabilityNormalizer",
    "AvailabilityEnricher",
    "EnrichmentResult",
    "ReservationMapper",
]
