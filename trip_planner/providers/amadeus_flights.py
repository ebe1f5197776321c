import re
from typing import Optional

from trip_planner.providers.amadeus_client import AmadeusClient, to_float
from trip_planner.providers.base import FlightOffer, FlightSearchParams, FlightsProvider

MAX_RESULTS = 10

_DURATION = re.compile(r"T(?:(\d+)H)?(?:(\d+)M)?")


def parse_duration_minutes(value: Optional[str]) -> int:
    """
    ISO-8601 itinerary duration -> minutes.
      'PT10H30M' -> 630, 'PT45M' -> 45, 'P1D' (no time part) -> 0
    """
    m = _DURATION.search(value or "")
    if not m:
        return 0
    hours, minutes = m.groups()
    return int(hours or 0) * 60 + int(minutes or 0)


def travel_class(cabin: Optional[str]) -> Optional[str]:
    """'premium_economy' -> 'PREMIUM ECONOMY'"""
    if not cabin:
        return None
    return cabin.upper().replace("_", " ")


class AmadeusFlightsProvider(FlightsProvider):
    """
    Flight Offers Search.
    - Resolve origin/destination through Airport & City Search (codes pass through)
    - Query flight offers in USD, then map each offer to a FlightOffer
    """

    SEARCH_PATH = "/v2/shopping/flight-offers"

    def __init__(self, client: AmadeusClient):
        self.client = client

    @staticmethod
    def _to_offer(off: dict, cabin: str) -> Optional[FlightOffer]:
        price = (off.get("price") or {})
        total = to_float(price.get("grandTotal") or price.get("total"))
        itineraries = off.get("itineraries") or []
        segments = (itineraries[0].get("segments") or []) if itineraries else []
        if total is None or not segments:
            return None

        first, last = segments[0], segments[-1]
        carrier = first.get("carrierCode") or ""
        number = first.get("number") or ""
        return {
            "id": str(off.get("id")),
            "carrier": carrier,
            "flight_number": f"{carrier}{number}",
            "depart_time": (first.get("departure") or {}).get("at"),
            "arrive_time": (last.get("arrival") or {}).get("at"),
            "duration_minutes": parse_duration_minutes(itineraries[0].get("duration")),
            "stops": len(segments) - 1,
            "cabin": cabin,
            "price_usd": total,
        }

    def search_flights(self, params: FlightSearchParams) -> list[FlightOffer]:
        o = self.client.resolve_location(params.origin, "origin")
        d = self.client.resolve_location(params.destination, "destination")

        offers = self.client.get_data(self.SEARCH_PATH, {
            "originLocationCode": o,
            "destinationLocationCode": d,
            "departureDate": params.depart_date,
            "returnDate": params.return_date,
            "adults": params.passengers,
            "travelClass": travel_class(params.cabin),
            "currencyCode": "USD",
            "maxPrice": params.max_price,
            "max": MAX_RESULTS,
        })

        cabin = params.cabin or "economy"
        out = []
        for off in offers:
            offer = self._to_offer(off, cabin)
            if offer is None:
                continue
            if params.max_price and offer["price_usd"] > params.max_price:
                continue
            out.append(offer)
        return out[:MAX_RESULTS]
