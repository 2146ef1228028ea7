"""Unit tests for availability and reservation transformers."""

from decimal import Decimal

import pytest

from src.clients.errors import ConfigMismatchError, ProtocolError
from src.models.booking import GuestContact, RawRoomRate, ReservationIntent
from src.models.catalog import PackageType
from src.transformers import AvailabilityEnricher, AvailabilityNormalizer, ReservationMapper


def raw_rate(room_type_code, rate_plan_code, before, after=None, currency="USD", start=None, end=None):
    return RawRoomRate(
        room_type_code=room_type_code,
        rate_plan_code=rate_plan_code,
        amount_before_tax=Decimal(str(before)),
        amount_after_tax=Decimal(str(after)) if after is not None else None,
        currency_code=currency,
        start=start,
        end=end,
    )


def rate_key(rate):
    return (rate.room_type_code, rate.rate_plan_code)


class TestAvailabilityNormalizer:
    """Tests for AvailabilityNormalizer."""

    def test_flat_shape(self, availability_flat_response):
        rates = AvailabilityNormalizer.normalize(availability_flat_response)

        assert len(rates) == 6
        first = rates[0]
        assert first.room_type_code == "1BBFG"
        assert first.rate_plan_code == "ALLINCPREM"
        assert first.amount_before_tax == Decimal("600")
        assert first.amount_after_tax == Decimal("680")
        assert first.currency_code == "USD"
        assert first.start == "2030-06-01"
        assert first.end == "2030-06-03"

    def test_grouped_shape(self, availability_grouped_response):
        rates = AvailabilityNormalizer.normalize(availability_grouped_response)

        assert [rate_key(rate) for rate in rates] == [
            ("1BBFG", "ALLINCPREM"),
            ("1BBFG", "AIF-2025"),
            ("2BMS", "ALLINCPREM"),
            ("XYZ", "AIF-2025"),
            ("1BT", "UNKNOWNPLAN"),
            ("1BT", "BI-2025"),
        ]

    def test_grouped_shape_falls_back_to_base_and_stay_dates(self, availability_grouped_response):
        rates = AvailabilityNormalizer.normalize(availability_grouped_response)
        by_key = {rate_key(rate): rate for rate in rates}

        from_base = by_key[("1BBFG", "AIF-2025")]
        assert from_base.amount_before_tax == Decimal("450")
        assert from_base.amount_after_tax == Decimal("500")

        from_stay = by_key[("1BBFG", "ALLINCPREM")]
        assert from_stay.start == "2030-06-01"
        assert from_stay.end == "2030-06-03"

    def test_both_shapes_normalize_to_same_rates(
        self,
        availability_flat_response,
        availability_grouped_response,
    ):
        flat = AvailabilityNormalizer.normalize(availability_flat_response)
        grouped = AvailabilityNormalizer.normalize(availability_grouped_response)

        assert sorted(flat, key=rate_key) == sorted(grouped, key=rate_key)

    def test_detect_shape(self, availability_flat_response, availability_grouped_response):
        assert AvailabilityNormalizer.detect_shape(availability_flat_response).shape == "flat"
        assert AvailabilityNormalizer.detect_shape(availability_grouped_response).shape == "grouped"

    def test_empty_response_yields_no_rates(self):
        assert AvailabilityNormalizer.normalize({}) == []
        assert AvailabilityNormalizer.normalize({"hotelAvailability": []}) == []

    def test_incomplete_records_are_dropped(self):
        response = {
            "hotelAvailability": [
                {
                    "roomStays": [
                        {
                            "roomRates": [
                                {"roomType": "1BT", "ratePlanCode": "BI-2025", "total": {}},
                                {"ratePlanCode": "BI-2025", "total": {"amountBeforeTax": 100}},
                                {"roomType": "1BT", "ratePlanCode": "BI-2025", "total": {"amountBeforeTax": 250}},
                            ]
                        }
                    ]
                }
            ]
        }

        rates = AvailabilityNormalizer.normalize(response)

        assert len(rates) == 1
        assert rates[0].amount_before_tax == Decimal("250")
        assert rates[0].amount_after_tax is None

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"hotelAvailability": {"roomStays": []}},
            {"hotelAvailability": ["not-an-object"]},
            {"roomStays": "nope"},
            {"roomStays": [{"roomRates": "nope"}]},
            {"roomStays": [{"roomType": {"roomTypeCode": "1BT"}, "ratePlans": [{"rates": "nope"}]}]},
        ],
    )
    def test_unrecognized_structure_raises_protocol_error(self, payload):
        with pytest.raises(ProtocolError):
            AvailabilityNormalizer.normalize(payload)


class TestAvailabilityEnricher:
    """Tests for AvailabilityEnricher."""

    def test_after_tax_fallback_and_package(self, catalog):
        enricher = AvailabilityEnricher(catalog)

        rooms = enricher.enrich([raw_rate("1BBFG", "AIF-2025", 500)])

        rate = rooms[0].rates[0]
        assert rate.amount_before_tax == Decimal("500")
        assert rate.amount_after_tax == Decimal("500")
        assert rate.package == PackageType.FAMILY
        assert rate.sort_order == 3
        assert rate.currency_code == "USD"

    def test_missing_currency_defaults_to_usd(self, catalog):
        rooms = AvailabilityEnricher(catalog).enrich([raw_rate("1BT", "BI-2025", 120, currency=None)])
        assert rooms[0].rates[0].currency_code == "USD"

    def test_enrich_fixture(self, catalog, availability_flat_response):
        raw_rates = AvailabilityNormalizer.normalize(availability_flat_response)

        result = AvailabilityEnricher(catalog).enrich_with_diagnostics(raw_rates)

        assert [room.room_type_code for room in result.rooms] == ["1BBFG", "1BT", "2BMS"]
        assert all(room.available for room in result.rooms)

        ocean_room = result.rooms[0]
        assert [rate.rate_plan_code for rate in ocean_room.rates] == ["AIF-2025", "ALLINCPREM"]
        assert ocean_room.room_type_name.en == "One Bedroom Beach Front"
        assert ocean_room.view_label.en == "Ocean View"
        assert ocean_room.lowest_rate.amount_after_tax == Decimal("500")
        assert ocean_room.lowest_rate.nights == 2
        assert ocean_room.lowest_rate.nightly_rate == Decimal("250.00")

        garden_room = result.rooms[1]
        assert [rate.rate_plan_code for rate in garden_room.rates] == ["BI-2025"]
        assert garden_room.rates[0].amount_after_tax == Decimal("300")

        assert result.missing_room_types == ["XYZ"]
        assert result.missing_rate_plans == ["UNKNOWNPLAN"]
        assert ConfigMismatchError(ConfigMismatchError.ROOM_TYPE, "XYZ") in result.diagnostics
        assert (
            ConfigMismatchError(ConfigMismatchError.RATE_PLAN, "UNKNOWNPLAN", room_type_code="1BT")
            in result.diagnostics
        )

    def test_rates_sorted_by_after_tax_amount(self, catalog):
        rooms = AvailabilityEnricher(catalog).enrich(
            [
                raw_rate("2BMS", "ALLINCPREM", 900, 1100),
                raw_rate("2BMS", "BI-2025", 400, 450),
                raw_rate("2BMS", "AIF-2025", 700, 800),
            ]
        )

        amounts = [rate.amount_after_tax for rate in rooms[0].rates]
        assert amounts == sorted(amounts)

    def test_equal_prices_keep_upstream_order(self, catalog):
        rooms = AvailabilityEnricher(catalog).enrich(
            [
                raw_rate("2BMS", "AIP-2025", 500, 500),
                raw_rate("2BMS", "AIF-2025", 500, 500),
            ]
        )

        assert [rate.rate_plan_code for rate in rooms[0].rates] == ["AIP-2025", "AIF-2025"]

    def test_room_with_only_unknown_rate_plans_is_unavailable(self, catalog):
        result = AvailabilityEnricher(catalog).enrich_with_diagnostics([raw_rate("1BT", "NOPE", 100)])

        assert len(result.rooms) == 1
        assert result.rooms[0].available is False
        assert result.rooms[0].rates == []
        assert result.missing_rate_plans == ["NOPE"]

    def test_unknown_room_type_is_dropped(self, catalog):
        result = AvailabilityEnricher(catalog).enrich_with_diagnostics([raw_rate("XYZ", "AIF-2025", 100)])

        assert result.rooms == []
        assert result.missing_room_types == ["XYZ"]

    def test_amenity_labels_by_language(self, catalog):
        enricher = AvailabilityEnricher(catalog)

        english = enricher.enrich([raw_rate("1BT", "BI-2025", 100)], "en")[0].rates[0]
        spanish = enricher.enrich([raw_rate("1BT", "BI-2025", 100)], "es")[0].rates[0]

        assert english.amenities == ["Daily Breakfast"]
        assert spanish.amenities == ["Desayuno Diario"]
        assert spanish.includes_labels == {"en": ["Daily Breakfast"], "es": ["Desayuno Diario"]}
        assert spanish.package_label.get("es") == "Solo Desayuno"

    def test_serialized_room_uses_camel_case(self, catalog):
        room = AvailabilityEnricher(catalog).enrich([raw_rate("1BBFG", "AIF-2025", 450, 500)])[0]

        data = room.model_dump(by_alias=True, mode="json")

        assert data["roomTypeCode"] == "1BBFG"
        assert data["sortOrder"] == 10
        assert data["rates"][0]["ratePlanCode"] == "AIF-2025"
        assert data["rates"][0]["package"] == "family"


class TestReservationMapper:
    """Tests for ReservationMapper."""

    @pytest.fixture
    def intent(self):
        return ReservationIntent(
            check_in="2025-06-01",
            check_out="2025-06-05",
            room_type_code="2BMS",
            rate_plan_code="ALLINCPREM",
            adults=2,
            children=1,
            amount_before_tax=Decimal("2400.50"),
            guest=GuestContact(
                first_name="Ana",
                last_name="García",
                email="ana@example.com",
                phone="+52 998 000 0000",
            ),
            special_requests="Late arrival",
        )

    def test_payload_room_rate(self, intent):
        payload = ReservationMapper.to_payload(intent, hotel_id="HOTEL1")

        reservation = payload["reservations"]["reservation"][0]
        room_rate = reservation["roomStay"]["roomRates"][0]

        assert room_rate["start"] == "2025-06-01"
        assert room_rate["end"] == "2025-06-05"
        assert room_rate["roomType"] == "2BMS"
        assert room_rate["ratePlanCode"] == "ALLINCPREM"
        assert room_rate["guestCounts"] == {"adults": "2", "children": "1"}
        assert room_rate["total"] == {"amountBeforeTax": "2400.50", "currencyCode": "USD"}
        assert room_rate["rates"]["rate"][0]["base"]["amountBeforeTax"] == "2400.50"
        assert "promotionCode" not in room_rate

    def test_payload_stay_and_guest(self, intent):
        reservation = ReservationMapper.to_payload(intent, hotel_id="HOTEL1")["reservations"]["reservation"][0]

        room_stay = reservation["roomStay"]
        assert room_stay["arrivalDate"] == "2025-06-01"
        assert room_stay["departureDate"] == "2025-06-05"
        assert room_stay["guestCounts"]["adults"] == "2"
        assert room_stay["guarantee"] == {
            "guaranteeCode": "PROP",
            "shortDescription": "Property Guaranteed",
            "onHold": False,
        }

        person = reservation["reservationGuests"][0]["profileInfo"]["profile"]["customer"]["personName"][0]
        assert person["givenName"] == "Ana"
        assert person["surname"] == "García"

        communication = reservation["reservationCommunication"]
        assert communication["emails"]["emailInfo"][0]["email"]["emailAddress"] == "ana@example.com"
        assert communication["telephones"]["telephoneInfo"][0]["telephone"]["phoneNumber"] == "+52 998 000 0000"

        assert reservation["hotelId"] == "HOTEL1"
        assert reservation["sourceOfSale"]["sourceCode"] == "HOTEL1"
        assert reservation["reservationPaymentMethods"] == [{"paymentMethod": "CA", "folioView": 1}]
        assert [c["comment"]["text"]["value"] for c in reservation["comments"]] == [
            "Booking from website",
            "Late arrival",
        ]

    def test_payload_promotion_code_and_currency(self, intent):
        promo_intent = intent.model_copy(update={"promo_code": "SUMMER", "currency_code": "MXN"})

        reservation = ReservationMapper.to_payload(promo_intent, hotel_id="HOTEL1")["reservations"]["reservation"][0]

        room_rate = reservation["roomStay"]["roomRates"][0]
        assert room_rate["promotionCode"] == "SUMMER"
        assert room_rate["total"]["currencyCode"] == "MXN"

    def test_payload_without_phone(self, intent):
        guest = intent.guest.model_copy(update={"phone": ""})
        reservation = ReservationMapper.to_payload(
            intent.model_copy(update={"guest": guest}), hotel_id="HOTEL1"
        )["reservations"]["reservation"][0]

        assert reservation["reservationCommunication"]["telephones"]["telephoneInfo"] == []

    def test_parse_identifiers(self):
        response = {
            "links": [
                {"href": "/reservations/13454120", "operationId": "getReservation"},
                {"href": "/reservations?confirmationNumberList=998877"},
            ]
        }

        result = ReservationMapper.parse_identifiers(response)

        assert result.reservation_id == "13454120"
        assert result.confirmation_number == "998877"
        assert result.has_identifiers

    def test_parse_identifiers_from_fixture(self, reservation_created_response):
        result = ReservationMapper.parse_identifiers(reservation_created_response)

        assert result.reservation_id == "13454120"
        assert result.confirmation_number == "998877"

    def test_missing_links_leave_identifiers_unset(self):
        result = ReservationMapper.parse_identifiers({})

        assert result.reservation_id is None
        assert result.confirmation_number is None
        assert not result.has_identifiers

    def test_non_numeric_href_leaves_identifier_unset(self):
        response = {
            "links": [
                {"href": "/reservations/abc", "operationId": "getReservation"},
                {"href": "/reservations?confirmationNumberList=998877"},
            ]
        }

        result = ReservationMapper.parse_identifiers(response)

        assert result.reservation_id is None
        assert result.confirmation_number == "998877"

    @pytest.mark.parametrize("links", ["not-a-list", ["not-an-object"]])
    def test_invalid_links_raise_protocol_error(self, links):
        with pytest.raises(ProtocolError):
            ReservationMapper.parse_identifiers({"links": links})
