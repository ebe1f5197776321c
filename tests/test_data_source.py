"""
Tests for provider selection and the mock fallback.
"""

from dataclasses import replace

import pytest

from trip_planner.agents.flights import run_flights_agent
from trip_planner.agents.hotels import run_hotels_agent
from trip_planner.providers.amadeus_client import AmadeusAuthError
from trip_planner.providers.base import FlightSearchParams, HotelSearchParams
from trip_planner.providers.data_source import TravelDataSource

from conftest import TOKEN_OK, FakeResponse, FakeSession

TOKEN = "/v1/security/oauth2/token"
LOCATIONS = "/v1/reference-data/locations"
FLIGHTS = "/v2/shopping/flight-offers"

SFO_LIS = FlightSearchParams(origin="SFO", destination="LIS", depart_date="2026-11-02", passengers=1)


class TestMockMode:
    """No Amadeus credentials configured."""

    def test_flights_come_from_mock_data(self, settings):
        source = TravelDataSource(settings)
        assert source.client is None

        offers = run_flights_agent(source, SFO_LIS)
        assert [o["id"] for o in offers] == ["FL-1", "FL-2"]

    def test_price_ceiling_applies_to_mock_data(self, settings):
        source = TravelDataSource(settings)

        offers = run_flights_agent(source, SFO_LIS.model_copy(update={"max_price": 500}))
        assert [o["id"] for o in offers] == ["FL-1", "FL-2"]
        assert all(o["price_usd"] <= 500 for o in offers)

        offers = run_flights_agent(source, SFO_LIS.model_copy(update={"max_price": 400}))
        assert [o["id"] for o in offers] == ["FL-2"]

    def test_requested_cabin_is_reported(self, settings):
        offers = run_flights_agent(TravelDataSource(settings), SFO_LIS.model_copy(update={"cabin": "business"}))
        assert {o["cabin"] for o in offers} == {"business"}

    def test_hotels_come_from_mock_data(self, settings):
        params = HotelSearchParams(city="Lisbon", check_in="2026-11-02", check_out="2026-11-07")
        offers = run_hotels_agent(TravelDataSource(settings), params)

        assert [h["id"] for h in offers] == ["HT-1", "HT-2"]
        assert [h["total_usd"] for h in offers] == [600, 450]

    def test_hotel_budget_filters_mock_data(self, settings):
        params = HotelSearchParams(city="Lisbon", check_in="2026-11-02", check_out="2026-11-07", budget_usd=500)
        offers = run_hotels_agent(TravelDataSource(settings), params)
        assert [h["id"] for h in offers] == ["HT-2"]

    def test_mocks_disabled_returns_nothing(self, settings):
        source = TravelDataSource(replace(settings, disable_travel_mocks=True))
        assert run_flights_agent(source, SFO_LIS) == []


class TestLiveFallback:
    """Credentials configured, provider misbehaves."""

    def test_provider_error_falls_back_to_mocks(self, live_settings):
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(500, text="upstream down")})
        source = TravelDataSource(live_settings, session=session)

        offers = run_flights_agent(source, SFO_LIS)
        assert [o["id"] for o in offers] == ["FL-1", "FL-2"]

    def test_provider_error_with_mocks_disabled_returns_nothing(self, live_settings):
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(500, text="upstream down")})
        source = TravelDataSource(replace(live_settings, disable_travel_mocks=True), session=session)

        assert run_flights_agent(source, SFO_LIS) == []

    def test_unknown_city_falls_back_to_mocks(self, live_settings):
        session = FakeSession({TOKEN: TOKEN_OK, LOCATIONS: FakeResponse(200, {"data": []})})
        source = TravelDataSource(live_settings, session=session)

        params = HotelSearchParams(city="Atlantis", check_in="2026-11-02", check_out="2026-11-04")
        offers = run_hotels_agent(source, params)
        assert [h["id"] for h in offers] == ["HT-1", "HT-2"]

    def test_html_body_with_success_status_falls_back_to_mocks(self, live_settings):
        page = FakeResponse(200, text="<html><body>502 Bad Gateway</body></html>")
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: page})
        source = TravelDataSource(live_settings, session=session)

        offers = run_flights_agent(source, SFO_LIS)
        assert [o["id"] for o in offers] == ["FL-1", "FL-2"]

    def test_unexpected_data_shape_falls_back_to_mocks(self, live_settings):
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(200, {"data": {"oops": True}})})
        source = TravelDataSource(live_settings, session=session)

        assert [o["id"] for o in run_flights_agent(source, SFO_LIS)] == ["FL-1", "FL-2"]

    def test_non_object_payload_falls_back_to_mocks(self, live_settings):
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(200, ["not", "an", "object"])})
        source = TravelDataSource(live_settings, session=session)

        assert [o["id"] for o in run_flights_agent(source, SFO_LIS)] == ["FL-1", "FL-2"]

    def test_malformed_itinerary_falls_back_to_mocks(self, live_settings):
        payload = {"data": [{"id": "9", "price": {"total": "100"}, "itineraries": [{"duration": 42, "segments": [{}]}]}]}
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(200, payload)})
        source = TravelDataSource(replace(live_settings, disable_travel_mocks=True), session=session)

        assert run_flights_agent(source, SFO_LIS) == []

    def test_token_failure_is_not_masked(self, live_settings):
        session = FakeSession({TOKEN: FakeResponse(401, text="invalid_client")})
        source = TravelDataSource(live_settings, session=session)

        with pytest.raises(AmadeusAuthError):
            run_flights_agent(source, SFO_LIS)

    def test_live_results_are_used_when_available(self, live_settings):
        payload = {"data": [{
            "id": "7",
            "price": {"total": "321.00"},
            "itineraries": [{"duration": "PT12H", "segments": [
                {"carrierCode": "TP", "number": "236",
                 "departure": {"at": "2026-11-02T20:00:00"}, "arrival": {"at": "2026-11-03T15:00:00"}},
            ]}],
        }]}
        session = FakeSession({TOKEN: TOKEN_OK, FLIGHTS: FakeResponse(200, payload)})
        source = TravelDataSource(live_settings, session=session)

        offers = run_flights_agent(source, SFO_LIS)
        assert [o["id"] for o in offers] == ["7"]
        assert offers[0]["duration_minutes"] == 720
