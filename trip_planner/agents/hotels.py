from trip_planner.providers.base import HotelOffer, HotelSearchParams
from trip_planner.providers.data_source import TravelDataSource


def run_hotels_agent(source: TravelDataSource, params: HotelSearchParams) -> list[HotelOffer]:
    live = (lambda: source.hotels.search_hotels(params)) if source.hotels else None
    return source.search("hotels", live, lambda: source.mock_hotels.search_hotels(params))
