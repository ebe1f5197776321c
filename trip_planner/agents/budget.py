from typing import Optional, TypedDict

from pydantic import BaseModel, Field

DEFAULT_FLIGHT_USD = 500
DEFAULT_HOTEL_PER_NIGHT_USD = 120
DEFAULT_NIGHTS = 4
DEFAULT_ACTIVITIES_USD = 200


class BudgetParams(BaseModel):
    flight_max_usd: Optional[int] = Field(default=None, gt=0)
    hotel_per_night_usd: Optional[int] = Field(default=None, gt=0)
    nights: Optional[int] = Field(default=None, gt=0)
    activities_usd: Optional[int] = Field(default=None, gt=0)
    passengers: Optional[int] = Field(default=None, gt=0)


class BudgetEstimate(TypedDict):
    total_usd: int
    breakdown: dict[str, int]


def estimate_budget(params: BudgetParams) -> BudgetEstimate:
    """Per-person flight + hotel + activities, multiplied by the party size."""
    flight = params.flight_max_usd or DEFAULT_FLIGHT_USD
    hotel = (params.hotel_per_night_usd or DEFAULT_HOTEL_PER_NIGHT_USD) * (params.nights or DEFAULT_NIGHTS)
    activities = params.activities_usd or DEFAULT_ACTIVITIES_USD
    pax = params.passengers or 1
    return {
        "total_usd": pax * (flight + hotel + activities),
        "breakdown": {
            "flight": flight * pax,
            "hotel": hotel * pax,
            "activities": activities * pax,
        },
    }
