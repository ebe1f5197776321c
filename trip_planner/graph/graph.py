import logging
import threading
import uuid
from typing import Any, Callable, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.config import get_stream_writer
from langgraph.graph import END, StateGraph

from trip_planner.conversation import ToolCall, Turn
from trip_planner.graph.confirmation import reconcile
from trip_planner.graph.state import TravelState
from trip_planner.llm.chat_model import to_langchain_messages
from trip_planner.llm.prompts import build_system_prompt
from trip_planner.providers.data_source import TravelDataSource
from trip_planner.tools.registry import (
    CapabilityRegistry,
    ToolContext,
    ToolValidationError,
    UnknownToolError,
    error_result,
)

logger = logging.getLogger(__name__)

MAX_STEPS = 10


# ---------------------------
# Utilities
# ---------------------------
def all_turns(state: TravelState) -> list[Turn]:
    return list(state.get("history") or []) + list(state.get("new_turns") or [])


def _cancel_event(config: Optional[RunnableConfig]) -> Optional[threading.Event]:
    return ((config or {}).get("configurable") or {}).get("cancel_event")


def _is_cancelled(config: Optional[RunnableConfig]) -> bool:
    ev = _cancel_event(config)
    return bool(ev and ev.is_set())


def _text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # content blocks
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text") or "")
    return "".join(parts)


def build_graph(
    model,
    registry: CapabilityRegistry,
    data_source: TravelDataSource,
    scheduler=None,
    max_steps: int = MAX_STEPS,
    system_prompt: Callable[[], str] = build_system_prompt,
):
    """
    confirm -> model -> tools -> model ... until the model answers without
    tool calls, a gated call needs a decision, or ``max_steps`` model calls
    have been made.
    """
    bound_model = model.bind_tools(registry.tool_specs())

    def tool_context(state: TravelState) -> ToolContext:
        return ToolContext(
            conversation_id=state["conversation_id"],
            data_source=data_source,
            scheduler=scheduler,
        )

    # ---------------------------
    # Nodes
    # ---------------------------
    def node_confirm(state: TravelState) -> TravelState:
        rec = reconcile(all_turns(state), state.get("decisions") or {}, registry, tool_context(state))

        new_turns = list(rec.results)
        user_text = (state.get("user_input") or "").strip()
        if user_text:
            new_turns.append(Turn.user(user_text))

        return {"new_turns": new_turns, "pending": rec.pending}

    def node_model(state: TravelState, config: RunnableConfig) -> TravelState:
        writer = get_stream_writer()
        messages = to_langchain_messages(system_prompt(), all_turns(state))
        steps = (state.get("steps") or 0) + 1

        full = None
        for chunk in bound_model.stream(messages, config=config):
            if _is_cancelled(config):
                logger.info("Exchange cancelled while streaming")
                return {"cancelled": True, "steps": steps}
            delta = _text(chunk.content)
            if delta:
                writer({"type": "text", "delta": delta})
            full = chunk if full is None else full + chunk

        if full is None:
            return {"new_turns": [Turn.assistant("")], "steps": steps}

        calls = [
            ToolCall(id=tc.get("id") or f"call_{uuid.uuid4().hex[:12]}", name=tc["name"], args=tc.get("args") or {})
            for tc in (full.tool_calls or [])
        ]
        logger.info(
            "Model step finished",
            extra={"extra": {"step": steps, "tool_calls": [c.name for c in calls]}},
        )
        return {"new_turns": [Turn.assistant(_text(full.content), calls)], "steps": steps}

    def node_tools(state: TravelState, config: RunnableConfig) -> TravelState:
        turns = all_turns(state)
        last = turns[-1] if turns else None
        calls = last.tool_calls if last is not None and last.role == "assistant" else []
        ctx = tool_context(state)

        results, pending = [], []
        for call in calls:
            if _is_cancelled(config):
                return {"new_turns": results, "cancelled": True}
            try:
                if registry.is_gated(call.name):
                    # checked now so a malformed booking is never offered for approval
                    registry.validate(call.name, call.args)
                    pending.append(call)
                    continue
                result = registry.run_auto(call, ctx)
            except (ToolValidationError, UnknownToolError) as e:
                logger.warning("Rejected tool call %s: %s", call.name, e)
                result = error_result(e)
            except Exception as e:
                logger.exception("Tool %s failed", call.name)
                result = error_result(e)
            results.append(Turn.tool(call, result))

        return {"new_turns": results, "pending": pending}

    # ---------------------------
    # Routing
    # ---------------------------
    def route_after_confirm(state: TravelState) -> str:
        return "wait" if state.get("pending") else "model"

    def route_after_model(state: TravelState) -> str:
        if state.get("cancelled"):
            return "end"
        last = (state.get("new_turns") or [None])[-1]
        if last is not None and last.role == "assistant" and last.tool_calls:
            return "tools"
        return "end"

    def route_after_tools(state: TravelState) -> str:
        if state.get("cancelled") or state.get("pending"):
            return "end"
        if (state.get("steps") or 0) >= max_steps:
            logger.warning("Step ceiling reached", extra={"extra": {"max_steps": max_steps}})
            return "end"
        return "model"

    # ---------------------------
    # Build graph
    # ---------------------------
    g = StateGraph(TravelState)

    g.add_node("confirm", node_confirm)
    g.add_node("model", node_model)
    g.add_node("tools", node_tools)

    g.set_entry_point("confirm")

    g.add_conditional_edges("confirm", route_after_confirm, {"model": "model", "wait": END})
    g.add_conditional_edges("model", route_after_model, {"tools": "tools", "end": END})
    g.add_conditional_edges("tools", route_after_tools, {"model": "model", "end": END})

    return g.compile()
