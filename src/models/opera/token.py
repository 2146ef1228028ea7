"""Pydantic model for the OAuth2 token grant response."""

from typing import Optional

from pydantic import Field

from src.models.opera.availability import OperaModel


class TokenGrantResponse(OperaModel):
    """Body of ``POST /oauth/v1/tokens``."""

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: int = Field(default=3600, ge=0)
    scope: Optional[str] = None
