import operator
from typing import Annotated, Optional, TypedDict

from trip_planner.conversation import ToolCall, Turn


class TravelState(TypedDict, total=False):
    conversation_id: str
    user_input: Optional[str]

    # caller decisions for gated calls: call id -> "approved" | "rejected"
    decisions: dict[str, str]

    # turns loaded from the store before this exchange
    history: list[Turn]

    # turns produced during this exchange, in order
    new_turns: Annotated[list[Turn], operator.add]

    # gated calls waiting for a decision
    pending: list[ToolCall]

    steps: int                  # model calls made in this exchange
    cancelled: bool
