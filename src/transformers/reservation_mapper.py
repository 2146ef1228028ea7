"""Maps booking intents to the OPERA reservation schema and parses the response links."""

import re
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError
from structlog import get_logger

from src.clients.errors import ProtocolError
from src.models.booking import ReservationIntent, ReservationResult
from src.models.opera.reservation import ReservationCreatedResponse

logger = get_logger(__name__)

GET_RESERVATION_OPERATION = "getReservation"
CONFIRMATION_QUERY_PARAM = "confirmationNumberList"
TRAILING_ID_PATTERN = re.compile(r"/(\d+)/?$")

GUARANTEE_DESCRIPTIONS = {
    "PROP": "Property Guaranteed",
    "CC": "Credit Card Guaranteed",
    "DRV": "Deposit Received",
    "DB": "Direct Bill Guaranteed",
}


def _decimal_string(value: int | Decimal) -> str:
    """Serialize a count or amount as the plain decimal string OPERA expects."""
    if isinstance(value, Decimal):
        # format "f" avoids exponent notation (Decimal("5E+2") -> "500")
        return format(value, "f")
    return str(value)


class ReservationMapper:
    """Builds reservation payloads and extracts identifiers from OPERA responses."""

    @staticmethod
    def _guest_counts(intent: ReservationIntent) -> dict[str, str]:
        return {
            "adults": _decimal_string(intent.adults),
            "children": _decimal_string(intent.children),
        }

    @staticmethod
    def _room_rate(intent: ReservationIntent, currency_code: str) -> dict[str, Any]:
        amount = _decimal_string(intent.amount_before_tax)
        room_rate: dict[str, Any] = {
            "roomType": intent.room_type_code,
            "ratePlanCode": intent.rate_plan_code,
            "start": intent.check_in,
            "end": intent.check_out,
            "suppressRate": False,
            "marketCode": "INTERNET",
            "sourceCode": "WEB",
            "numberOfUnits": "1",
            "pseudoRoom": False,
            "roomTypeCharged": intent.room_type_code,
            "houseUseOnly": False,
            "complimentary": False,
            "fixedRate": True,
            "discountAllowed": False,
            "bogoDiscount": False,
            "roomNumberLocked": False,
            "guestCounts": ReservationMapper._guest_counts(intent),
            "rates": {
                "rate": [
                    {
                        "base": {
                            "amountBeforeTax": amount,
                            "currencyCode": currency_code,
                        },
                        "total": {
                            "amountBeforeTax": amount,
                        },
                        "start": intent.check_in,
                        "end": intent.check_out,
                        "shareDistributionInstruction": "Full",
                    }
                ]
            },
            "total": {
                "amountBeforeTax": amount,
                "currencyCode": currency_code,
            },
        }
        if intent.promo_code:
            room_rate["promotionCode"] = intent.promo_code
        return room_rate

    @staticmethod
    def _comments(intent: ReservationIntent) -> list[dict[str, Any]]:
        comments = [
            {
                "comment": {
                    "text": {"value": "Booking from website"},
                    "commentTitle": "General Notes",
                    "notificationLocation": "RESERVATION",
                    "type": "GEN",
                    "internal": False,
                }
            }
        ]
        if intent.special_requests:
            comments.append(
                {
                    "comment": {
                        "text": {"value": intent.special_requests},
                        "commentTitle": "Special Requests",
                        "notificationLocation": "RESERVATION",
                        "type": "GEN",
                        "internal": False,
                    }
                }
            )
        return comments

    @staticmethod
    def to_payload(
        intent: ReservationIntent,
        hotel_id: str,
        currency_code: str = "USD",
        guarantee_code: str = "PROP",
    ) -> dict[str, Any]:
        """Build the body of ``POST /rsv/v1/hotels/{hotelId}/reservations``.

        Counts and amounts are decimal strings; dates are passed through as
        given (YYYY-MM-DD).

        Args:
            intent: Validated booking intent
            hotel_id: OPERA hotel code
            currency_code: Currency when the intent does not carry one
            guarantee_code: OPERA guarantee code (PROP = property guaranteed)

        Returns:
            Nested reservation payload
        """
        currency_code = intent.currency_code or currency_code
        guest = intent.guest

        reservation = {
            "sourceOfSale": {
                "sourceType": "PMS",
                "sourceCode": hotel_id,
            },
            "roomStay": {
                "roomRates": [ReservationMapper._room_rate(intent, currency_code)],
                "guestCounts": ReservationMapper._guest_counts(intent),
                "arrivalDate": intent.check_in,
                "departureDate": intent.check_out,
                "guarantee": {
                    "guaranteeCode": guarantee_code,
                    "shortDescription": GUARANTEE_DESCRIPTIONS.get(guarantee_code, guarantee_code),
                    "onHold": False,
                },
                "roomNumberLocked": False,
                "printRate": False,
            },
            "reservationGuests": [
                {
                    "profileInfo": {
                        "profile": {
                            "customer": {
                                "personName": [
                                    {
                                        "givenName": guest.first_name,
                                        "surname": guest.last_name,
                                        "nameType": "Primary",
                                    }
                                ],
                                "language": "E",
                            },
                            "profileType": "Guest",
                        }
                    },
                    "primary": True,
                }
            ],
            "reservationCommunication": {
                "emails": {
                    "emailInfo": [
                        {
                            "email": {
                                "emailAddress": guest.email,
                                "type": "HOME",
                                "primaryInd": True,
                            }
                        }
                    ]
                    if guest.email
                    else []
                },
                "telephones": {
                    "telephoneInfo": [
                        {
                            "telephone": {
                                "phoneNumber": guest.phone,
                                "phoneUseType": "HOME",
                                "primaryInd": True,
                            }
                        }
                    ]
                    if guest.phone
                    else []
                },
            },
            "reservationPaymentMethods": [
                {
                    "paymentMethod": "CA",
                    "folioView": 1,
                }
            ],
            "comments": ReservationMapper._comments(intent),
            "hotelId": hotel_id,
            "roomStayReservation": True,
            "reservationStatus": "Reserved",
            "computedReservationStatus": "Reserved",
            "walkIn": False,
            "printRate": False,
            "preRegistered": False,
            "upgradeEligible": False,
            "allowAutoCheckin": False,
            "hasOpenFolio": False,
            "allowMobileCheckout": False,
            "allowMobileViewFolio": False,
            "allowPreRegistration": False,
            "optedForCommunication": False,
        }

        return {"reservations": {"reservation": [reservation]}}

    @staticmethod
    def _reservation_id_from_href(href: str) -> Optional[str]:
        match = TRAILING_ID_PATTERN.search(urlsplit(href).path)
        return match.group(1) if match else None

    @staticmethod
    def _confirmation_number_from_href(href: str) -> Optional[str]:
        values = parse_qs(urlsplit(href).query).get(CONFIRMATION_QUERY_PARAM, [])
        for value in values:
            first = value.split(",")[0].strip()
            if first.isdigit():
                return first
        return None

    @staticmethod
    def parse_identifiers(response: Any) -> ReservationResult:
        """Extract reservation id and confirmation number from hypermedia links.

        A missing link or a non-matching href leaves the field unset; the
        reservation was still created.

        Args:
            response: Parsed JSON of the reservation creation response

        Returns:
            ReservationResult with whichever identifiers could be parsed

        Raises:
            ProtocolError: If ``links`` is present but not a list of link objects
        """
        if not isinstance(response, dict):
            raise ProtocolError("Reservation response is not a JSON object", payload=response)

        try:
            parsed = ReservationCreatedResponse.model_validate(
                {"links": response.get("links") or []}
            )
        except ValidationError as e:
            logger.error("Unparsable reservation links", error=str(e), payload=response)
            raise ProtocolError(f"Unparsable reservation links: {str(e)}", payload=response) from e

        reservation_id: Optional[str] = None
        confirmation_number: Optional[str] = None

        self_link = next(
            (link for link in parsed.links if link.operation_id == GET_RESERVATION_OPERATION),
            None,
        )
        if self_link is not None:
            reservation_id = ReservationMapper._reservation_id_from_href(self_link.href)

        confirmation_link = next(
            (link for link in parsed.links if CONFIRMATION_QUERY_PARAM in link.href),
            None,
        )
        if confirmation_link is not None:
            confirmation_number = ReservationMapper._confirmation_number_from_href(
                confirmation_link.href
            )

        if reservation_id is None:
            logger.warning(
                "Reservation id not found in response links",
                link_count=len(parsed.links),
                has_get_reservation_link=self_link is not None,
            )
        if confirmation_number is None:
            logger.warning(
                "Confirmation number not found in response links",
                link_count=len(parsed.links),
                has_confirmation_link=confirmation_link is not None,
            )

        return ReservationResult(
            reservation_id=reservation_id,
            confirmation_number=confirmation_number,
        )
