"""In-process OAuth2 token cache for the OPERA Cloud gateway."""

import asyncio
import base64
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from pydantic import ValidationError
from structlog import get_logger

from src.clients.errors import AuthError, OperaTimeoutError, ProtocolError
from src.clients.transport import build_timeout, send_request
from src.config import settings
from src.config.settings import OperaSettings
from src.models.booking.token import AccessToken
from src.models.opera.token import TokenGrantResponse

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCache:
    """Caches the client-credentials access token shared by every request.

    One instance is created at service start and passed to every client.
    A stale or absent token is refreshed through a single in-flight grant
    exchange: concurrent callers await that same exchange and receive its
    token or its exception.
    """

    TOKEN_ENDPOINT = "/oauth/v1/tokens"
    REFRESH_MARGIN = timedelta(minutes=5)

    def __init__(
        self,
        opera_settings: Optional[OperaSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the token cache.

        Args:
            opera_settings: Gateway credentials; defaults to the global settings
            http_client: Shared AsyncClient; a short-lived client is used per
                grant when omitted
            clock: Returns the current UTC instant (injectable for tests)
        """
        self.settings = opera_settings or settings.opera
        self._http_client = http_client
        self._clock = clock or _utcnow
        self._token: Optional[AccessToken] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def cached_token(self) -> Optional[AccessToken]:
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next caller performs a new grant."""
        self._token = None

    async def get_token(self) -> AccessToken:
        """Return a token valid for at least REFRESH_MARGIN, refreshing if needed.

        Raises:
            AuthError: If the grant is rejected
            ProtocolError: If the grant response has no access token
            OperaTimeoutError: If every attempt timed out
        """
        token = self._token
        if token is not None and token.is_fresh(self._clock(), self.REFRESH_MARGIN):
            return token

        if self._refresh_task is None:
            logger.info(
                "OPERA access token stale or absent, requesting new token",
                had_token=token is not None,
            )
            self._refresh_task = asyncio.ensure_future(self._refresh())
            self._refresh_task.add_done_callback(self._on_refresh_done)
        else:
            logger.debug("Joining in-flight OPERA token refresh")

        # shield: a cancelled caller must not cancel the refresh other callers await
        return await asyncio.shield(self._refresh_task)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Waiters re-raise the exception; this only stops asyncio from
            # reporting it as never retrieved when all waiters were cancelled.
            task.exception()

    async def _refresh(self) -> AccessToken:
        """Run the grant exchange with bounded retries for transient failures."""
        attempts = self.settings.token_max_retries + 1

        for attempt in range(attempts):
            try:
                token = await self._request_token()
            except (AuthError, OperaTimeoutError) as e:
                if not self._is_transient(e) or attempt == attempts - 1:
                    raise
                wait_time = self.settings.retry_backoff_seconds * (2 ** attempt)
                logger.warning(
                    "OPERA token request failed, retrying",
                    error=str(e),
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    wait_seconds=wait_time,
                )
                await asyncio.sleep(wait_time)
                continue

            self._token = token
            return token

        raise AuthError("Unable to obtain OPERA token")

    @staticmethod
    def _is_transient(error: Exception) -> bool:
        if isinstance(error, OperaTimeoutError):
            return True
        status_code = getattr(error, "status_code", None)
        return status_code is None or status_code >= 500

    async def _request_token(self) -> AccessToken:
        """Perform one client-credentials grant.

        Returns:
            Fresh AccessToken

        Raises:
            AuthError: Non-success status or transport failure
            ProtocolError: Response without an access token
            OperaTimeoutError: Connect or request timeout
        """
        token_url = f"{self.settings.base_url}{self.TOKEN_ENDPOINT}"
        credentials = f"{self.settings.client_id}:{self.settings.client_secret}"
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {base64.b64encode(credentials.encode()).decode()}",
            "x-app-key": self.settings.app_key,
            "enterpriseId": self.settings.enterprise_id,
        }
        payload = {
            "grant_type": "client_credentials",
            "scope": self.settings.scope,
        }

        logger.debug(
            "Requesting OPERA token",
            token_url=token_url,
            scope=self.settings.scope,
            enterprise_id=self.settings.enterprise_id,
        )

        acquired_at = self._clock()
        try:
            if self._http_client is not None:
                response = await send_request(
                    self._http_client,
                    "POST",
                    token_url,
                    self.settings.request_timeout,
                    data=payload,
                    headers=headers,
                )
            else:
                async with httpx.AsyncClient(timeout=build_timeout(self.settings)) as client:
                    response = await send_request(
                        client,
                        "POST",
                        token_url,
                        self.settings.request_timeout,
                        data=payload,
                        headers=headers,
                    )
        except httpx.RequestError as e:
            logger.error("OPERA token request transport failure", error=str(e))
            raise AuthError(f"Token request failed: {str(e)}") from e

        if not response.is_success:
            logger.error(
                "OPERA token request failed",
                status_code=response.status_code,
                response_text=response.text[:500],
                requested_scope=self.settings.scope,
            )
            raise AuthError(
                f"Unable to obtain OPERA token: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            grant = TokenGrantResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("OPERA token response is malformed", response_text=response.text[:500])
            raise ProtocolError(
                f"Malformed OPERA token response: {str(e)}",
                payload=response.text[:500],
            ) from e

        if not grant.access_token:
            logger.error(
                "OPERA token missing in response",
                response_keys=sorted(grant.model_dump(exclude_none=True)),
            )
            raise ProtocolError(
                "OPERA token missing in response",
                payload=grant.model_dump(exclude_none=True),
            )

        token = AccessToken.from_grant(
            access_token=grant.access_token,
            expires_in=grant.expires_in,
            acquired_at=acquired_at,
            token_type=grant.token_type,
            scope=grant.scope,
        )
        logger.info(
            "Successfully fetched OPERA token",
            expires_in=grant.expires_in,
            expires_at=token.expires_at.isoformat(),
        )
        return token
