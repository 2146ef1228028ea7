"""OPERA Cloud (OHIP) API client for availability and reservations."""

import uuid
from typing import Any, Optional

import httpx
from structlog import get_logger

from src.clients.errors import (
    AuthError,
    OperaConfigurationError,
    ProtocolError,
    UpstreamError,
)
from src.clients.token_cache import TokenCache
from src.clients.transport import build_http_client, send_request
from src.config import settings
from src.config.settings import OperaSettings
from src.models.booking import AvailabilityQuery, ReservationIntent, ReservationResult
from src.transformers.reservation_mapper import ReservationMapper

logger = get_logger(__name__)


class OperaPMSClient:
    """Authorized request issuer for the OPERA Cloud gateway.

    Responses are returned as parsed JSON without reshaping; normalization
    of availability payloads happens in the transformers.
    """

    IDEMPOTENCY_HEADER = "x-idempotency-key"

    def __init__(
        self,
        opera_settings: Optional[OperaSettings] = None,
        token_cache: Optional[TokenCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            opera_settings: Gateway configuration; defaults to the global settings
            token_cache: Shared token cache; one is created on the same
                http client when omitted
            http_client: Shared AsyncClient; the client owns one when omitted

        Raises:
            OperaConfigurationError: If required settings are missing
        """
        self.settings = opera_settings or settings.opera
        missing = self.settings.missing_required()
        if missing:
            raise OperaConfigurationError(missing)

        self.base_url = self.settings.base_url
        self.hotel_id = self.settings.hotel_id
        self.enterprise_id = self.settings.enterprise_id
        self._owns_http_client = http_client is None
        self.http_client = http_client or build_http_client(self.settings)
        self.token_cache = token_cache or TokenCache(self.settings, self.http_client)
        self.logger = logger.bind(hotel_id=self.hotel_id)

    async def __aenter__(self) -> "OperaPMSClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the http client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def _get_headers(self) -> dict[str, str]:
        """Headers for authorized OPERA requests, with a current bearer token."""
        token = await self.token_cache.get_token()
        return {
            "Authorization": f"Bearer {token.value}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "x-enterpriseid": self.enterprise_id,
            "x-hotelid": self.hotel_id,
            "x-app-key": self.settings.app_key,
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """Issue one authorized request. Never retried here.

        Args:
            method: HTTP method
            endpoint: API path (without gateway URL)
            data: JSON body
            params: Query parameters
            extra_headers: Additional headers (e.g. idempotency key)

        Returns:
            Parsed JSON body ({} for empty bodies)

        Raises:
            AuthError: 401/403 from the gateway
            UpstreamError: Any other non-success status or transport failure
            ProtocolError: Success status with a non-JSON body
            OperaTimeoutError: Connect or request timeout
        """
        url = f"{self.base_url}{endpoint}"
        headers = await self._get_headers()
        if extra_headers:
            headers.update(extra_headers)

        self.logger.debug("OPERA API request", method=method, endpoint=endpoint, params=params)

        try:
            response = await send_request(
                self.http_client,
                method,
                url,
                self.settings.request_timeout,
                headers=headers,
                json=data,
                params=params,
            )
        except httpx.RequestError as e:
            self.logger.error("OPERA request failed", method=method, endpoint=endpoint, error=str(e))
            raise UpstreamError(
                f"Request failed for {endpoint}: {str(e)}",
                endpoint=endpoint,
            ) from e

        if response.status_code in (401, 403):
            self.logger.error(
                "OPERA authorization failed",
                endpoint=endpoint,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise AuthError(
                f"Authorization failed for {endpoint}: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        if not response.is_success:
            self.logger.error(
                "OPERA request returned error status",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise UpstreamError(
                f"OPERA error at {endpoint}: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
                endpoint=endpoint,
            )

        self.logger.debug(
            "OPERA request successful",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            self.logger.error(
                "OPERA response is not JSON",
                endpoint=endpoint,
                response_text=response.text[:500],
            )
            raise ProtocolError(
                f"Non-JSON response from {endpoint}",
                payload=response.text[:500],
            ) from e

    async def check_availability(self, query: AvailabilityQuery) -> dict[str, Any]:
        """Fetch availability for a stay.

        Args:
            query: Validated search parameters

        Returns:
            Raw availability payload, in whichever shape OPERA produced it
        """
        params: dict[str, Any] = {
            "roomStayStartDate": query.check_in,
            "roomStayEndDate": query.check_out,
            "adults": query.adults,
            "children": query.children,
            "roomStayQuantity": 1,
            "limit": self.settings.availability_limit,
        }
        if query.rate_plan_code:
            params["ratePlanCode"] = query.rate_plan_code
        if query.promo_code:
            params["promotionCode"] = query.promo_code

        self.logger.info(
            "Fetching availability from OPERA",
            check_in=query.check_in,
            check_out=query.check_out,
            adults=query.adults,
            children=query.children,
            rate_plan_code=query.rate_plan_code,
            promo_code=query.promo_code,
        )
        response = await self._make_request(
            "GET", f"/par/v1/hotels/{self.hotel_id}/availability", params=params
        )

        hotel_availability = response.get("hotelAvailability") if isinstance(response, dict) else None
        self.logger.info(
            "Successfully fetched availability",
            hotel_availability_count=len(hotel_availability) if isinstance(hotel_availability, list) else 0,
        )
        return response

    async def create_reservation(
        self,
        intent: ReservationIntent,
        idempotency_key: Optional[str] = None,
    ) -> ReservationResult:
        """Create a reservation in OPERA.

        Not retried on any failure. Callers retrying after an ambiguous
        failure (timeout) must pass the idempotency key of the first attempt.

        Args:
            intent: Validated booking intent
            idempotency_key: Client-supplied key; generated when omitted

        Returns:
            ReservationResult with parsed identifiers, raw body and the key used
        """
        idempotency_key = idempotency_key or self.generate_idempotency_key()
        payload = ReservationMapper.to_payload(
            intent,
            hotel_id=self.hotel_id,
            currency_code=self.settings.currency_code,
            guarantee_code=self.settings.guarantee_code,
        )

        self.logger.info(
            "Creating reservation in OPERA",
            room_type_code=intent.room_type_code,
            rate_plan_code=intent.rate_plan_code,
            check_in=intent.check_in,
            check_out=intent.check_out,
            adults=intent.adults,
            children=intent.children,
            idempotency_key=idempotency_key,
        )
        response = await self._make_request(
            "POST",
            f"/rsv/v1/hotels/{self.hotel_id}/reservations",
            data=payload,
            extra_headers={self.IDEMPOTENCY_HEADER: idempotency_key},
        )

        result = ReservationMapper.parse_identifiers(response)
        result = result.model_copy(update={"idempotency_key": idempotency_key, "raw": response})
        self.logger.info(
            "Reservation created",
            reservation_id=result.reservation_id,
            confirmation_number=result.confirmation_number,
        )
        return result

    async def get_reservation_by_id(self, reservation_id: str) -> dict[str, Any]:
        """Fetch a reservation by its OPERA internal id (raw representation)."""
        self.logger.info("Looking up reservation by id", reservation_id=reservation_id)
        return await self._make_request(
            "GET", f"/rsv/v1/hotels/{self.hotel_id}/reservations/{reservation_id}"
        )

    async def get_reservation_by_confirmation_number(self, confirmation_number: str) -> dict[str, Any]:
        """Fetch reservations matching a confirmation number (raw representation)."""
        self.logger.info(
            "Looking up reservation by confirmation number",
            confirmation_number=confirmation_number,
        )
        return await self._make_request(
            "GET",
            f"/rsv/v1/hotels/{self.hotel_id}/reservations",
            params={"confirmationNumberList": confirmation_number},
        )

    async def get_guarantee_codes(self) -> dict[str, Any]:
        """Fetch the guarantee codes configured for the hotel."""
        self.logger.info("Fetching guarantee codes")
        return await self._make_request(
            "GET", "/rsv/config/v1/guaranteeCodes", params={"hotelIds": self.hotel_id}
        )

    @staticmethod
    def generate_idempotency_key() -> str:
        return str(uuid.uuid4())
