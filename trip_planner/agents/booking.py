import logging
import time
from typing import Any, Optional, TypedDict

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Person(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)


class BookFlightParams(BaseModel):
    flight_id: str
    passengers: list[Person] = Field(min_length=1)
    payment_token: Optional[str] = Field(default=None, description="mock token for demo")


class BookHotelParams(BaseModel):
    hotel_id: str
    guest: Person
    rooms: int = Field(default=1, ge=1)
    payment_token: Optional[str] = None


class BookingConfirmation(TypedDict):
    confirmation_id: str
    provider: str
    details: Any


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def book_flight(params: BookFlightParams) -> BookingConfirmation:
    confirmation: BookingConfirmation = {
        "confirmation_id": f"CONF-FLT-{params.flight_id}-{_epoch_ms()}",
        "provider": "MockAir",
        "details": params.model_dump(),
    }
    logger.info("Flight booked", extra={"extra": {"confirmation_id": confirmation["confirmation_id"]}})
    return confirmation


def book_hotel(params: BookHotelParams) -> BookingConfirmation:
    confirmation: BookingConfirmation = {
        "confirmation_id": f"CONF-HTL-{params.hotel_id}-{_epoch_ms()}",
        "provider": "MockStay",
        "details": params.model_dump(),
    }
    logger.info("Hotel booked", extra={"extra": {"confirmation_id": confirmation["confirmation_id"]}})
    return confirmation
