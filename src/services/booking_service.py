"""Booking service: the interface the booking application calls."""

from typing import Any, Optional

import httpx
from structlog import get_logger

from src.clients import OperaConfigurationError, OperaPMSClient, TokenCache
from src.clients.transport import build_http_client
from src.config import settings
from src.config.catalog import load_catalog
from src.config.settings import OperaSettings
from src.models.booking import (
    AvailabilityDiagnosis,
    AvailabilityQuery,
    EnrichedRoom,
    ReservationIntent,
    ReservationResult,
)
from src.models.catalog import ConfigCatalog
from src.services.token_inspector import TokenInfo, inspect_token
from src.transformers import AvailabilityEnricher, AvailabilityNormalizer

logger = get_logger(__name__)


class BookingService:
    """Availability search, reservation creation and lookups against OPERA.

    Create one instance at service start (``from_settings``) and share it;
    the token cache inside the client is the only shared mutable state.
    """

    def __init__(
        self,
        client: OperaPMSClient,
        catalog: ConfigCatalog,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = client
        self.catalog = catalog
        self.enricher = AvailabilityEnricher(catalog)
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls,
        opera_settings: Optional[OperaSettings] = None,
        catalog: Optional[ConfigCatalog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "BookingService":
        """Wire one http client, one token cache and one OPERA client.

        Args:
            opera_settings: Gateway configuration; defaults to the global settings
            catalog: Static catalog; loaded from ``catalog_path`` or the built-in one
            transport: Optional httpx transport (tests)

        Raises:
            OperaConfigurationError: If required settings are missing
        """
        opera_settings = opera_settings or settings.opera
        missing = opera_settings.missing_required()
        if missing:
            raise OperaConfigurationError(missing)

        catalog = catalog or load_catalog(opera_settings.catalog_path)
        http_client = build_http_client(opera_settings, transport=transport)
        token_cache = TokenCache(opera_settings, http_client)
        client = OperaPMSClient(opera_settings, token_cache=token_cache, http_client=http_client)
        return cls(client, catalog, http_client=http_client)

    async def __aenter__(self) -> "BookingService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()
        if self._http_client is not None:
            await self._http_client.aclose()

    async def check_availability(
        self,
        check_in: str,
        check_out: str,
        adults: int,
        children: int = 0,
        rate_plan_code: Optional[str] = None,
        promo_code: Optional[str] = None,
        language: str = "en",
    ) -> list[EnrichedRoom]:
        """Search availability and return the enriched room list.

        Raises:
            pydantic.ValidationError: If the search parameters are invalid
            OperaClientError: Upstream failures (auth, status, shape, timeout)
        """
        query = AvailabilityQuery(
            check_in=check_in,
            check_out=check_out,
            adults=adults,
            children=children,
            rate_plan_code=rate_plan_code,
            promo_code=promo_code,
            language=language,
        )
        response = await self.client.check_availability(query)
        raw_rates = AvailabilityNormalizer.normalize(response)
        rooms = self.enricher.enrich(raw_rates, query.language)

        logger.info(
            "Availability search complete",
            check_in=query.check_in,
            check_out=query.check_out,
            raw_rate_count=len(raw_rates),
            room_count=len(rooms),
            available_room_count=sum(1 for room in rooms if room.available),
        )
        return rooms

    async def diagnose_availability(
        self,
        check_in: str,
        check_out: str,
        adults: int,
        children: int = 0,
        rate_plan_code: Optional[str] = None,
        promo_code: Optional[str] = None,
    ) -> AvailabilityDiagnosis:
        """Compare the codes OPERA returns with the catalog.

        Used to find room types or rate plans that must be added to the
        catalog before they show up in search results.
        """
        query = AvailabilityQuery(
            check_in=check_in,
            check_out=check_out,
            adults=adults,
            children=children,
            rate_plan_code=rate_plan_code,
            promo_code=promo_code,
        )
        response = await self.client.check_availability(query)
        raw_rates = AvailabilityNormalizer.normalize(response)
        result = self.enricher.enrich_with_diagnostics(raw_rates, query.language)

        room_types = list(dict.fromkeys(rate.room_type_code for rate in raw_rates))
        rate_plans = list(dict.fromkeys(rate.rate_plan_code for rate in raw_rates))

        return AvailabilityDiagnosis(
            room_types_in_response=room_types,
            rate_plans_in_response=rate_plans,
            matching_room_types=[code for code in room_types if code in self.catalog.room_types],
            missing_room_types=[code for code in room_types if code not in self.catalog.room_types],
            matching_rate_plans=[code for code in rate_plans if code in self.catalog.rate_plans],
            missing_rate_plans=[code for code in rate_plans if code not in self.catalog.rate_plans],
            raw_rate_count=len(raw_rates),
            enriched_room_count=len(result.rooms),
            raw_response=response,
        )

    async def create_reservation(
        self,
        intent: ReservationIntent,
        idempotency_key: Optional[str] = None,
    ) -> ReservationResult:
        """Create a reservation. Never retried automatically."""
        return await self.client.create_reservation(intent, idempotency_key=idempotency_key)

    async def lookup_reservation(
        self,
        reservation_id: Optional[str] = None,
        confirmation_number: Optional[str] = None,
    ) -> dict[str, Any]:
        """Fetch the raw OPERA reservation record by id or by confirmation number.

        Raises:
            ValueError: Unless exactly one selector is given
        """
        if bool(reservation_id) == bool(confirmation_number):
            raise ValueError("Provide exactly one of reservation_id or confirmation_number")
        if reservation_id:
            return await self.client.get_reservation_by_id(reservation_id)
        return await self.client.get_reservation_by_confirmation_number(confirmation_number)

    async def inspect_token(self) -> TokenInfo:
        """Decode the current access token (scopes, expiry) for troubleshooting."""
        token = await self.client.token_cache.get_token()
        return inspect_token(token)

    async def list_guarantee_codes(self) -> dict[str, Any]:
        return await self.client.get_guarantee_codes()
