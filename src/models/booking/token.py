"""Access token held by the token cache."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccessToken(BaseModel):
    """OAuth2 bearer token with its absolute expiry instant."""

    value: str = Field(repr=False)
    expires_at: datetime
    token_type: str = "Bearer"
    scope: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_grant(
        cls,
        access_token: str,
        expires_in: int,
        acquired_at: datetime,
        token_type: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> "AccessToken":
        """Build a token whose expiry is the acquisition instant plus ``expires_in`` seconds."""
        return cls(
            value=access_token,
            expires_at=acquired_at + timedelta(seconds=expires_in),
            token_type=token_type or "Bearer",
            scope=scope,
        )

    def is_fresh(self, now: datetime, margin: timedelta) -> bool:
        """True if the token stays valid for longer than ``margin`` after ``now``."""
        return now + margin < self.expires_at

    def seconds_remaining(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds()))
