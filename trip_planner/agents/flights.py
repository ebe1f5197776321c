from trip_planner.providers.base import FlightOffer, FlightSearchParams
from trip_planner.providers.data_source import TravelDataSource


def run_flights_agent(source: TravelDataSource, params: FlightSearchParams) -> list[FlightOffer]:
    live = (lambda: source.flights.search_flights(params)) if source.flights else None
    return source.search("flights", live, lambda: source.mock_flights.search_flights(params))
