import logging

from pydantic import BaseModel

from trip_planner.agents import booking, budget, recommendations, scheduling
from trip_planner.agents.flights import run_flights_agent
from trip_planner.agents.hotels import run_hotels_agent
from trip_planner.providers.base import FlightSearchParams, HotelSearchParams
from trip_planner.tools.registry import Auto, Capability, CapabilityRegistry, Gated, ToolContext

logger = logging.getLogger(__name__)


class CityParams(BaseModel):
    city: str


class LocationParams(BaseModel):
    location: str


def _weather(params: CityParams, ctx: ToolContext) -> str:
    logger.info("Getting weather information for %s", params.city)
    return f"The weather in {params.city} is sunny"


def _local_time(params: LocationParams, ctx: ToolContext) -> str:
    logger.info("Getting local time for %s", params.location)
    return "10am"


def _scheduler(ctx: ToolContext) -> scheduling.TaskScheduler:
    if ctx.scheduler is None:
        raise RuntimeError("task scheduling is not configured")
    return ctx.scheduler


CAPABILITIES = [
    Capability(
        "get_weather_information",
        "show the weather in a given city to the user",
        CityParams,
        Gated(),
    ),
    Capability(
        "get_local_time",
        "get the local time for a specified location",
        LocationParams,
        Auto(_local_time),
    ),
    # travel search
    Capability(
        "search_flights",
        "Search available flights given origin, destination, dates, passenger count, "
        "cabin and optional max price (USD)",
        FlightSearchParams,
        Auto(lambda p, ctx: run_flights_agent(ctx.data_source, p)),
    ),
    Capability(
        "search_hotels",
        "Search available hotels given city, dates, guests, optional room count and budget (USD)",
        HotelSearchParams,
        Auto(lambda p, ctx: run_hotels_agent(ctx.data_source, p)),
    ),
    Capability(
        "get_recommendations",
        "Get destination/activity recommendations based on interests, month/season and budget",
        recommendations.RecommendationParams,
        Auto(lambda p, ctx: recommendations.run_recommendations_agent(p)),
    ),
    Capability(
        "estimate_travel_budget",
        "Estimate total trip budget; include flight max, hotel per-night, nights, "
        "activities and passenger count",
        budget.BudgetParams,
        Auto(lambda p, ctx: budget.estimate_budget(p)),
    ),
    # scheduling
    Capability(
        "schedule_task",
        "A tool to schedule a task to be executed at a later time",
        scheduling.ScheduleTaskParams,
        Auto(lambda p, ctx: _scheduler(ctx).schedule(ctx.conversation_id, p.description, p.when)),
    ),
    Capability(
        "get_scheduled_tasks",
        "List all tasks that have been scheduled",
        scheduling.ListTasksParams,
        Auto(lambda p, ctx: scheduling.list_tasks_reply(_scheduler(ctx), ctx.conversation_id)),
    ),
    Capability(
        "cancel_scheduled_task",
        "Cancel a scheduled task using its ID",
        scheduling.CancelTaskParams,
        Auto(lambda p, ctx: scheduling.cancel_task_reply(_scheduler(ctx), ctx.conversation_id, p.task_id)),
    ),
    # booking, requires confirmation
    Capability(
        "book_flight",
        "Book a selected flight by id with passenger details. Requires human confirmation.",
        booking.BookFlightParams,
        Gated(),
    ),
    Capability(
        "book_hotel",
        "Book a selected hotel by id with guest details and room count. Requires human confirmation.",
        booking.BookHotelParams,
        Gated(),
    ),
]

# implementations of the gated tools above, run only after approval
EXECUTIONS = {
    "get_weather_information": _weather,
    "book_flight": lambda p, ctx: booking.book_flight(p),
    "book_hotel": lambda p, ctx: booking.book_hotel(p),
}


def build_registry() -> CapabilityRegistry:
    return CapabilityRegistry(CAPABILITIES, EXECUTIONS)
