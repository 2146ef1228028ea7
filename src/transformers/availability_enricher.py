"""Joins normalized room rates with the local catalog."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from structlog import get_logger

from src.clients.errors import ConfigMismatchError
from src.models.booking import EnrichedRate, EnrichedRoom, RawRoomRate, stay_nights
from src.models.catalog import DEFAULT_LANGUAGE, ConfigCatalog, RatePlanConfig

logger = get_logger(__name__)

DEFAULT_CURRENCY = "USD"
CENT = Decimal("0.01")


@dataclass
class EnrichmentResult:
    """Enriched rooms plus the catalog mismatches encountered on the way."""

    rooms: list[EnrichedRoom] = field(default_factory=list)
    diagnostics: list[ConfigMismatchError] = field(default_factory=list)

    @property
    def missing_room_types(self) -> list[str]:
        return _unique(
            d.code for d in self.diagnostics if d.mismatch == ConfigMismatchError.ROOM_TYPE
        )

    @property
    def missing_rate_plans(self) -> list[str]:
        return _unique(
            d.code for d in self.diagnostics if d.mismatch == ConfigMismatchError.RATE_PLAN
        )


def _unique(codes: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(codes))


class AvailabilityEnricher:
    """Builds the room/rate model shown by the booking site.

    Pure with respect to process state: output depends only on the raw
    rates, the language and the catalog. Rooms or rates without a catalog
    entry are dropped, never defaulted.
    """

    def __init__(self, catalog: ConfigCatalog):
        self.catalog = catalog

    def _group_by_room_type(self, raw_rates: Iterable[RawRoomRate]) -> dict[str, list[RawRoomRate]]:
        groups: dict[str, list[RawRoomRate]] = {}
        for rate in raw_rates:
            groups.setdefault(rate.room_type_code, []).append(rate)
        return groups

    def _amenity_labels(self, plan: RatePlanConfig, language: str) -> list[str]:
        return [self.catalog.amenity_label(code, language) for code in plan.includes]

    def _enrich_rate(self, raw: RawRoomRate, plan: RatePlanConfig, language: str) -> EnrichedRate:
        package = self.catalog.package_type(plan.package)
        amount_after_tax = (
            raw.amount_after_tax if raw.amount_after_tax is not None else raw.amount_before_tax
        )
        nights = stay_nights(raw.start, raw.end)
        nightly_rate: Optional[Decimal] = None
        if nights:
            nightly_rate = (amount_after_tax / nights).quantize(CENT, rounding=ROUND_HALF_UP)

        return EnrichedRate(
            rate_plan_code=raw.rate_plan_code,
            rate_plan_name=plan.label,
            package=plan.package,
            package_label=package.label,
            package_color=package.color,
            includes=list(plan.includes),
            includes_labels={
                "en": self._amenity_labels(plan, "en"),
                "es": self._amenity_labels(plan, "es"),
            },
            amenities=self._amenity_labels(plan, language),
            amount_before_tax=raw.amount_before_tax,
            amount_after_tax=amount_after_tax,
            currency_code=raw.currency_code or DEFAULT_CURRENCY,
            nights=nights,
            nightly_rate=nightly_rate,
            sort_order=plan.sort_order,
        )

    def enrich_with_diagnostics(
        self,
        raw_rates: Iterable[RawRoomRate],
        language: str = DEFAULT_LANGUAGE,
    ) -> EnrichmentResult:
        """Enrich raw rates and report every catalog mismatch.

        Args:
            raw_rates: Output of AvailabilityNormalizer
            language: Language of the ``amenities`` labels

        Returns:
            EnrichmentResult with rooms sorted by catalog sort order
        """
        result = EnrichmentResult()
        groups = self._group_by_room_type(raw_rates)

        for room_type_code, rates in groups.items():
            room_config = self.catalog.room_type(room_type_code)
            if room_config is None:
                mismatch = ConfigMismatchError(ConfigMismatchError.ROOM_TYPE, room_type_code)
                result.diagnostics.append(mismatch)
                logger.warning(
                    "No catalog entry for room type, dropping its rates",
                    room_type_code=room_type_code,
                    dropped_rate_count=len(rates),
                )
                continue

            enriched_rates: list[EnrichedRate] = []
            for raw in rates:
                plan = self.catalog.rate_plan(raw.rate_plan_code)
                if plan is None:
                    mismatch = ConfigMismatchError(
                        ConfigMismatchError.RATE_PLAN,
                        raw.rate_plan_code,
                        room_type_code=room_type_code,
                    )
                    result.diagnostics.append(mismatch)
                    logger.warning(
                        "No catalog entry for rate plan, dropping rate",
                        room_type_code=room_type_code,
                        rate_plan_code=raw.rate_plan_code,
                    )
                    continue
                enriched_rates.append(self._enrich_rate(raw, plan, language))

            # list.sort is stable: equal prices keep upstream order
            enriched_rates.sort(key=lambda rate: rate.amount_after_tax)

            result.rooms.append(
                EnrichedRoom(
                    room_type_code=room_type_code,
                    room_type_name=room_config.name,
                    bedrooms=room_config.bedrooms,
                    max_adults=room_config.max_adults,
                    max_children=room_config.max_children,
                    beds=list(room_config.beds),
                    location=room_config.location,
                    view=room_config.view,
                    view_label=self.catalog.view_label(room_config.view),
                    rates=enriched_rates,
                    available=len(enriched_rates) > 0,
                    sort_order=room_config.sort_order,
                )
            )

        result.rooms.sort(key=lambda room: room.sort_order)

        if result.diagnostics:
            logger.warning(
                "Availability enriched with catalog mismatches",
                room_count=len(result.rooms),
                missing_room_types=result.missing_room_types,
                missing_rate_plans=result.missing_rate_plans,
            )
        else:
            logger.info("Availability enriched", room_count=len(result.rooms))
        return result

    def enrich(
        self,
        raw_rates: Iterable[RawRoomRate],
        language: str = DEFAULT_LANGUAGE,
    ) -> list[EnrichedRoom]:
        """Enrich raw rates into rooms; mismatches are logged and dropped."""
        return self.enrich_with_diagnostics(raw_rates, language).rooms
