import logging
from typing import Callable, Optional, TypeVar

import requests

from trip_planner.config import Settings
from trip_planner.providers.amadeus_client import (
    AmadeusAuthError,
    AmadeusClient,
    AmadeusError,
    UnknownLocationError,
)
from trip_planner.providers.amadeus_flights import AmadeusFlightsProvider
from trip_planner.providers.amadeus_hotels import AmadeusHotelsProvider
from trip_planner.providers.base import FlightsProvider, HotelsProvider
from trip_planner.providers.mock_travel import MockFlightsProvider, MockHotelsProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TravelDataSource:
    """
    Picks the live provider when Amadeus credentials are configured and
    degrades to mock data (or nothing, with DISABLE_TRAVEL_MOCKS) otherwise.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.mock_flights: FlightsProvider = MockFlightsProvider()
        self.mock_hotels: HotelsProvider = MockHotelsProvider()

        self.client: Optional[AmadeusClient] = None
        self.flights: Optional[FlightsProvider] = None
        self.hotels: Optional[HotelsProvider] = None
        if settings.has_amadeus_credentials:
            self.client = AmadeusClient(settings, session=session)
            self.flights = AmadeusFlightsProvider(self.client)
            self.hotels = AmadeusHotelsProvider(self.client)

    @property
    def mocks_disabled(self) -> bool:
        return self.settings.disable_travel_mocks

    def _mock_or_empty(self, mock_search: Callable[[], list[T]]) -> list[T]:
        if self.mocks_disabled:
            return []
        return mock_search()

    def search(
        self,
        kind: str,
        live_search: Optional[Callable[[], list[T]]],
        mock_search: Callable[[], list[T]],
    ) -> list[T]:
        """
        Run ``live_search`` and fall back once on provider failure.
        Token exchange failures are not caught: they end this call chain.
        """
        if live_search is None:
            logger.info("No Amadeus credentials, using mock %s", kind)
            return self._mock_or_empty(mock_search)

        try:
            return live_search()
        except AmadeusAuthError:
            raise
        except (AmadeusError, UnknownLocationError) as e:
            logger.warning(
                "Amadeus %s search failed, falling back",
                kind,
                extra={"extra": {"error": str(e), "mocks_disabled": self.mocks_disabled}},
            )
            return self._mock_or_empty(mock_search)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            # response decoded but not shaped like the documented payload
            logger.warning(
                "Malformed Amadeus %s response, falling back",
                kind,
                exc_info=True,
                extra={"extra": {"error": f"{type(e).__name__}: {e}", "mocks_disabled": self.mocks_disabled}},
            )
            return self._mock_or_empty(mock_search)
