"""Tests for the OPERA access token cache."""

import asyncio
import base64
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from src.clients.errors import AuthError, OperaTimeoutError, ProtocolError
from src.clients.token_cache import TokenCache


class FakeClock:
    """Settable UTC clock."""

    def __init__(self):
        self.now = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def grant_response(token="token-1", expires_in=3600):
    return httpx.Response(
        200,
        json={"access_token": token, "token_type": "Bearer", "expires_in": expires_in},
    )


class TestTokenCaching:
    """Freshness window and cache reuse."""

    @pytest.mark.asyncio
    async def test_fetches_token_on_first_call(self, opera_settings, token_grant_response):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=token_grant_response)

        clock = FakeClock()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=clock)
            token = await cache.get_token()

        assert token.value == token_grant_response["access_token"]
        assert token.expires_at == clock.now + timedelta(seconds=3600)
        assert token.scope == token_grant_response["scope"]
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_reuses_token_outside_refresh_margin(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return grant_response(token=f"token-{calls['count']}")

        clock = FakeClock()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=clock)
            first = await cache.get_token()

            # 400 s before expiry: still outside the 5 minute margin
            clock.advance(3600 - 400)
            second = await cache.get_token()

        assert first.value == second.value == "token-1"
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_refreshes_token_inside_refresh_margin(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return grant_response(token=f"token-{calls['count']}")

        clock = FakeClock()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=clock)
            await cache.get_token()

            clock.advance(3600 - 200)
            refreshed = await cache.get_token()

        assert refreshed.value == "token-2"
        assert refreshed.expires_at == clock.now + timedelta(seconds=3600)
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_grant(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return grant_response(token=f"token-{calls['count']}")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            await cache.get_token()
            cache.invalidate()
            assert cache.cached_token is None
            token = await cache.get_token()

        assert token.value == "token-2"
        assert calls["count"] == 2


class TestTokenRequest:
    """Shape of the client-credentials exchange."""

    @pytest.mark.asyncio
    async def test_grant_request_headers_and_body(self, opera_settings):
        requests = []

        def handler(request):
            requests.append(request)
            return grant_response()

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            await cache.get_token()

        request = requests[0]
        expected_basic = base64.b64encode(b"client-id:client-secret").decode()
        form = parse_qs(request.content.decode())

        assert request.method == "POST"
        assert str(request.url) == "https://gateway.example.com/oauth/v1/tokens"
        assert request.headers["Authorization"] == f"Basic {expected_basic}"
        assert request.headers["x-app-key"] == "app-key-123"
        assert request.headers["enterpriseId"] == "ENTERPRISE1"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert form["grant_type"] == ["client_credentials"]
        assert form["scope"] == ["urn:opc:hgbu:ws:__myscopes__"]

    @pytest.mark.asyncio
    async def test_missing_access_token_raises_protocol_error(self, opera_settings):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer", "expires_in": 3600})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(ProtocolError):
                await cache.get_token()

        assert cache.cached_token is None

    @pytest.mark.asyncio
    async def test_non_json_grant_raises_protocol_error(self, opera_settings):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(ProtocolError):
                await cache.get_token()


class TestTokenFailures:
    """Rejections, retries and timeouts."""

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return httpx.Response(401, text='{"error":"invalid_client"}')

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(AuthError) as exc_info:
                await cache.get_token()

        assert exc_info.value.status_code == 401
        assert "invalid_client" in exc_info.value.body
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, opera_settings):
        responses = [httpx.Response(503, text="unavailable"), grant_response(token="after-retry")]
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return responses.pop(0)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            token = await cache.get_token()

        assert token.value == "after-retry"
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return httpx.Response(500, text="boom")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(AuthError) as exc_info:
                await cache.get_token()

        assert exc_info.value.status_code == 500
        assert calls["count"] == opera_settings.token_max_retries + 1

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self, opera_settings):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            raise httpx.ConnectTimeout("connect timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(OperaTimeoutError):
                await cache.get_token()

        assert calls["count"] == opera_settings.token_max_retries + 1

    @pytest.mark.asyncio
    async def test_failure_does_not_poison_later_calls(self, opera_settings):
        responses = [httpx.Response(401, text="denied"), grant_response(token="recovered")]

        def handler(request):
            return responses.pop(0)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            with pytest.raises(AuthError):
                await cache.get_token()
            token = await cache.get_token()

        assert token.value == "recovered"


class TestSingleFlight:
    """Concurrent callers share one grant exchange."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_grant(self, opera_settings):
        calls = {"count": 0}

        async def handler(request):
            calls["count"] += 1
            await asyncio.sleep(0.05)
            return grant_response(token="shared")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            tokens = await asyncio.gather(*(cache.get_token() for _ in range(10)))

        assert calls["count"] == 1
        assert {token.value for token in tokens} == {"shared"}

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_failure(self, opera_settings):
        calls = {"count": 0}

        async def handler(request):
            calls["count"] += 1
            await asyncio.sleep(0.05)
            return httpx.Response(403, text="forbidden")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            results = await asyncio.gather(
                *(cache.get_token() for _ in range(10)),
                return_exceptions=True,
            )

        assert calls["count"] == 1
        assert all(isinstance(result, AuthError) for result in results)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_refresh(self, opera_settings):
        async def handler(request):
            await asyncio.sleep(0.05)
            return grant_response(token="survivor")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            cache = TokenCache(opera_settings, http_client, clock=FakeClock())
            impatient = asyncio.ensure_future(cache.get_token())
            patient = asyncio.ensure_future(cache.get_token())
            await asyncio.sleep(0.01)
            impatient.cancel()

            token = await patient

        assert impatient.cancelled()
        assert token.value == "survivor"
