from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "tool"]
Decision = Literal["approved", "rejected"]
CallState = Literal["requested", "approved", "rejected", "completed"]

APPROVED = "approved"
REJECTED = "rejected"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ToolCall(BaseModel):
    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class Turn(BaseModel):
    """One entry of the append-only conversation history."""

    id: str = Field(default_factory=_new_id)
    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)

    # tool turns only
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    result: Any = None
    decision: Optional[Decision] = None

    created_at: datetime = Field(default_factory=_now)

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[list[ToolCall]] = None) -> "Turn":
        return cls(role="assistant", content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(
        cls,
        call: ToolCall,
        result: Any,
        decision: Optional[Decision] = None,
    ) -> "Turn":
        return cls(
            role="tool",
            tool_call_id=call.id,
            name=call.name,
            result=result,
            decision=decision,
        )


def tool_results(turns: list[Turn]) -> dict[str, Turn]:
    """Tool turns keyed by the call id they answer."""
    return {t.tool_call_id: t for t in turns if t.role == "tool" and t.tool_call_id}


def iter_tool_calls(turns: list[Turn]):
    for t in turns:
        if t.role == "assistant":
            yield from t.tool_calls


def call_state(call: ToolCall, results: dict[str, Turn]) -> CallState:
    answered = results.get(call.id)
    if answered is None:
        return "requested"
    if answered.decision == REJECTED:
        return "rejected"
    return "completed"


def unresolved_calls(turns: list[Turn]) -> list[ToolCall]:
    results = tool_results(turns)
    return [c for c in iter_tool_calls(turns) if c.id not in results]
