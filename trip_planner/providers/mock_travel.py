from datetime import datetime, timedelta, timezone

from trip_planner.providers.amadeus_hotels import nights_between
from trip_planner.providers.base import (
    FlightOffer,
    FlightSearchParams,
    FlightsProvider,
    HotelOffer,
    HotelSearchParams,
    HotelsProvider,
)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def mock_flights() -> list[FlightOffer]:
    week = datetime.now(timezone.utc) + timedelta(days=7)
    return [
        {
            "id": "FL-1",
            "carrier": "CF",
            "flight_number": "CF123",
            "depart_time": _iso(week),
            "arrive_time": _iso(week + timedelta(hours=10)),
            "duration_minutes": 600,
            "stops": 0,
            "cabin": "economy",
            "price_usd": 450,
        },
        {
            "id": "FL-2",
            "carrier": "CF",
            "flight_number": "CF456",
            "depart_time": _iso(week + timedelta(hours=2)),
            "arrive_time": _iso(week + timedelta(hours=14)),
            "duration_minutes": 720,
            "stops": 1,
            "cabin": "economy",
            "price_usd": 380,
        },
    ]


def mock_hotels() -> list[HotelOffer]:
    now = datetime.now(timezone.utc)
    check_in, check_out = _iso(now + timedelta(days=7)), _iso(now + timedelta(days=12))
    return [
        {
            "id": "HT-1",
            "name": "Lisbon Central Hotel",
            "stars": 4,
            "location": "Lisbon City Center",
            "check_in": check_in,
            "check_out": check_out,
            "price_per_night_usd": 120,
            "total_usd": 600,
        },
        {
            "id": "HT-2",
            "name": "Alfama Boutique",
            "stars": 3,
            "location": "Alfama, Lisbon",
            "check_in": check_in,
            "check_out": check_out,
            "price_per_night_usd": 90,
            "total_usd": 450,
        },
    ]


class MockFlightsProvider(FlightsProvider):
    def search_flights(self, params: FlightSearchParams) -> list[FlightOffer]:
        out = []
        for f in mock_flights():
            if params.max_price and f["price_usd"] > params.max_price:
                continue
            out.append({**f, "cabin": params.cabin or f["cabin"]})
        return out


class MockHotelsProvider(HotelsProvider):
    def search_hotels(self, params: HotelSearchParams) -> list[HotelOffer]:
        nights = nights_between(params.check_in, params.check_out)
        out = []
        for h in mock_hotels():
            h = {**h, "total_usd": h["price_per_night_usd"] * nights}
            if params.budget_usd and h["total_usd"] > params.budget_usd:
                continue
            out.append(h)
        return out
