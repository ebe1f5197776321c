from abc import ABC, abstractmethod
from datetime import date
from typing import Annotated, Literal, Optional, TypedDict

from pydantic import AfterValidator, BaseModel, Field

CabinClass = Literal["economy", "premium_economy", "business", "first"]


def _calendar_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError("expected a calendar date as YYYY-MM-DD") from None
    return value


# kept as text for the upstream query, checked to be a real YYYY-MM-DD date
IsoDate = Annotated[str, AfterValidator(_calendar_date)]


class FlightSearchParams(BaseModel):
    origin: str = Field(min_length=3, max_length=3, description="Origin IATA code, e.g. SFO")
    destination: str = Field(min_length=3, max_length=3, description="Destination IATA code, e.g. LIS")
    depart_date: IsoDate = Field(description="YYYY-MM-DD")
    return_date: Optional[IsoDate] = Field(default=None, description="YYYY-MM-DD for round-trip")
    passengers: int = Field(default=1, ge=1)
    cabin: Optional[CabinClass] = None
    max_price: Optional[int] = Field(default=None, gt=0, description="Maximum price in USD")


class HotelSearchParams(BaseModel):
    city: str = Field(min_length=2)
    check_in: IsoDate = Field(description="YYYY-MM-DD")
    check_out: IsoDate = Field(description="YYYY-MM-DD")
    guests: int = Field(default=1, ge=1)
    room_count: Optional[int] = Field(default=None, ge=1)
    budget_usd: Optional[int] = Field(default=None, gt=0)


class FlightOffer(TypedDict):
    id: str
    carrier: str
    flight_number: str
    depart_time: str        # ISO
    arrive_time: str        # ISO
    duration_minutes: int
    stops: int
    cabin: str
    price_usd: float


class HotelOffer(TypedDict):
    id: str
    name: str
    stars: int
    location: str
    check_in: str
    check_out: str
    price_per_night_usd: int
    total_usd: int


class FlightsProvider(ABC):
    @abstractmethod
    def search_flights(self, params: FlightSearchParams) -> list[FlightOffer]:
        ...


class HotelsProvider(ABC):
    @abstractmethod
    def search_hotels(self, params: HotelSearchParams) -> list[HotelOffer]:
        ...
