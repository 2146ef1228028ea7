"""Pydantic models for OPERA reservation responses."""

from typing import Optional

from pydantic import Field

from src.models.opera.availability import OperaModel


class HypermediaLink(OperaModel):
    """HATEOAS link returned by the reservation endpoints."""

    href: str = ""
    rel: Optional[str] = None
    method: Optional[str] = None
    operation_id: Optional[str] = Field(None, alias="operationId")
    templated: Optional[bool] = None


class ReservationCreatedResponse(OperaModel):
    """Body of ``POST /rsv/v1/hotels/{hotelId}/reservations``.

    OPERA answers with links only; identifiers have to be parsed out of them.
    """

    links: list[HypermediaLink] = Field(default_factory=list)
