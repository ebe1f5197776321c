from typing import Optional

from pydantic import BaseModel, Field


class RecommendationParams(BaseModel):
    city: Optional[str] = None
    interests: Optional[list[str]] = None
    month: Optional[str] = Field(default=None, description='e.g. "October"')
    budget_usd: Optional[int] = Field(default=None, gt=0)


LISBON_IDEAS = [
    "Try a day trip to Sintra and Cabo da Roca",
    "Visit Jerónimos Monastery and Belém Tower",
    "Explore Time Out Market for food options",
]


def run_recommendations_agent(params: RecommendationParams) -> list[str]:
    # curated list only; inputs are accepted so the model can pass what it knows
    return list(LISBON_IDEAS)
