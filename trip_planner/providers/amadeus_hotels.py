from datetime import date
from typing import List, Optional

from dateutil import parser as dtparser

from trip_planner.providers.amadeus_client import AmadeusClient, to_float
from trip_planner.providers.base import HotelOffer, HotelSearchParams, HotelsProvider
from trip_planner.utils.country import display_location

MAX_RESULTS = 10
MAX_HOTEL_IDS = 20


def nights_between(check_in: str, check_out: str) -> int:
    """Whole nights between two dates, never less than 1."""
    ci: date = dtparser.parse(check_in).date()
    co: date = dtparser.parse(check_out).date()
    return max(1, (co - ci).days)


class AmadeusHotelsProvider(HotelsProvider):
    """
    - Resolve user city text -> IATA city code via Airport & City Search
    - Get hotelIds by cityCode
    - Fetch offers by hotelIds + dates, one HotelOffer per hotel (first offer)
    """

    BY_CITY_PATH = "/v1/reference-data/locations/hotels/by-city"
    OFFERS_PATH = "/v3/shopping/hotel-offers"

    def __init__(self, client: AmadeusClient):
        self.client = client

    def _get_hotel_ids_by_city(self, city_code: str, limit: int = MAX_HOTEL_IDS) -> List[str]:
        hotels = self.client.get_data(self.BY_CITY_PATH, {"cityCode": city_code})
        ids = [h.get("hotelId") for h in hotels if h.get("hotelId")]
        return ids[:limit]

    @staticmethod
    def _total_price(offer: dict, nights: int) -> Optional[int]:
        price = offer.get("price") or {}
        average = to_float(((price.get("variations") or {}).get("average") or {}).get("base"))
        if average is not None:
            return round(average * nights)
        total = to_float(price.get("total"))
        if total is not None:
            return round(total)
        return None

    def _to_offer(self, item: dict, params: HotelSearchParams, city_code: str, nights: int) -> Optional[HotelOffer]:
        hotel = item.get("hotel") or {}
        offers = item.get("offers") or []
        if not offers:
            return None

        total = self._total_price(offers[0], nights)
        if total is None:
            return None

        address = hotel.get("address") or {}
        try:
            stars = int(hotel.get("rating") or 0)
        except (TypeError, ValueError):
            stars = 0

        return {
            "id": hotel.get("hotelId") or item.get("hotelId") or offers[0].get("id"),
            "name": hotel.get("name") or "Unknown Hotel",
            "stars": stars,
            "location": display_location(
                address.get("cityName"),
                address.get("countryCode"),
                fallback=hotel.get("cityCode") or city_code,
            ),
            "check_in": offers[0].get("checkInDate") or params.check_in,
            "check_out": offers[0].get("checkOutDate") or params.check_out,
            "price_per_night_usd": round(total / nights),
            "total_usd": total,
        }

    def search_hotels(self, params: HotelSearchParams) -> list[HotelOffer]:
        city_code = self.client.resolve_location(params.city, "city", sub_type="CITY")

        hotel_ids = self._get_hotel_ids_by_city(city_code)
        if not hotel_ids:
            return []

        items = self.client.get_data(self.OFFERS_PATH, {
            "hotelIds": ",".join(hotel_ids),
            "adults": params.guests,
            "checkInDate": params.check_in,
            "checkOutDate": params.check_out,
            "roomQuantity": params.room_count,
            "currency": "USD",
        })

        nights = nights_between(params.check_in, params.check_out)
        out = []
        for item in items:
            offer = self._to_offer(item, params, city_code, nights)
            if offer is None:
                continue
            if params.budget_usd and offer["total_usd"] > params.budget_usd:
                continue
            out.append(offer)
        return out[:MAX_RESULTS]
