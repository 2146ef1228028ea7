"""Inspection of the OPERA access token (scopes and expiry) for troubleshooting."""

from datetime import datetime, timezone
from typing import Any, Optional

import jwt
from pydantic import BaseModel, Field

from src.clients.errors import ProtocolError
from src.models.booking import AccessToken

MASKED_CLAIMS = ("sub",)


class TokenInfo(BaseModel):
    """Decoded view of an access token. The token itself is never included."""

    header: dict[str, Any] = Field(default_factory=dict)
    claims: dict[str, Any] = Field(default_factory=dict)
    scopes: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    expires_in: int = 0
    is_expired: bool = True
    token_preview: str = ""


def inspect_token(token: AccessToken, now: Optional[datetime] = None) -> TokenInfo:
    """Decode a JWT access token without verifying its signature.

    Args:
        token: Token from the TokenCache
        now: Reference instant (defaults to current UTC time)

    Returns:
        TokenInfo with masked claims, scopes and expiry

    Raises:
        ProtocolError: If the token is not a JWT
    """
    now = now or datetime.now(timezone.utc)
    try:
        header = jwt.get_unverified_header(token.value)
        claims = jwt.decode(token.value, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError as e:
        raise ProtocolError(f"Access token is not a valid JWT: {str(e)}") from e

    for claim in MASKED_CLAIMS:
        if claim in claims:
            claims[claim] = "***"

    raw_scope = claims.get("scope") or token.scope or ""
    scopes = raw_scope.split() if isinstance(raw_scope, str) else list(raw_scope)

    exp = claims.get("exp")
    expires_at = (
        datetime.fromtimestamp(exp, tz=timezone.utc) if isinstance(exp, (int, float)) else token.expires_at
    )
    expires_in = max(0, int((expires_at - now).total_seconds()))

    value = token.value
    return TokenInfo(
        header=header,
        claims=claims,
        scopes=scopes,
        expires_at=expires_at,
        expires_in=expires_in,
        is_expired=expires_in <= 0,
        token_preview=f"{value[:12]}...{value[-6:]}",
    )
