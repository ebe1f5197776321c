"""
One exchange between the caller and the assistant.

``ChatOrchestrator.run`` loads the conversation, drives the graph and yields
JSON-ready events while it goes:

    {"type": "conversation", "conversation_id": ...}
    {"type": "text", "delta": ...}                      streamed model output
    {"type": "turn", "turn": {...}}                     a turn appended to the history
    {"type": "awaiting_confirmation", "tool_calls": [...]}
    {"type": "error", "error": ...}
    {"type": "done", "steps": n, "cancelled": bool}

Turns are written to the store as soon as the graph produces them, so an
exchange that fails or is cancelled keeps what was already recorded and
never records a half-streamed assistant message.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import closing
from typing import Callable, Iterator, Mapping, Optional

from trip_planner.conversation import ToolCall, Turn
from trip_planner.graph.graph import MAX_STEPS, build_graph
from trip_planner.providers.data_source import TravelDataSource
from trip_planner.store import ConversationStore
from trip_planner.tools.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


def turn_event(turn: Turn) -> dict:
    return {"type": "turn", "turn": turn.model_dump(mode="json")}


def awaiting_event(calls: list[ToolCall]) -> dict:
    return {"type": "awaiting_confirmation", "tool_calls": [c.model_dump(mode="json") for c in calls]}


class ChatOrchestrator:
    def __init__(
        self,
        store: ConversationStore,
        registry: CapabilityRegistry,
        data_source: TravelDataSource,
        model_factory: Callable[[], object],
        scheduler=None,
        max_steps: int = MAX_STEPS,
    ):
        self.store = store
        self.registry = registry
        self.data_source = data_source
        self.model_factory = model_factory
        self.scheduler = scheduler
        self.max_steps = max_steps
        self._graph = None
        self._graph_lock = threading.Lock()

    @property
    def graph(self):
        # the chat model needs an API key, so build on first use
        with self._graph_lock:
            if self._graph is None:
                self._graph = build_graph(
                    self.model_factory(),
                    self.registry,
                    self.data_source,
                    scheduler=self.scheduler,
                    max_steps=self.max_steps,
                )
            return self._graph

    def run(
        self,
        conversation_id: Optional[str] = None,
        message: Optional[str] = None,
        decisions: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[dict]:
        conversation_id = (conversation_id or "").strip() or uuid.uuid4().hex
        cancel_event = cancel_event or threading.Event()
        yield {"type": "conversation", "conversation_id": conversation_id}

        state = {
            "conversation_id": conversation_id,
            "user_input": message,
            "decisions": dict(decisions or {}),
            "history": self.store.load(conversation_id),
            "new_turns": [],
            "steps": 0,
        }
        config = {
            "configurable": {"cancel_event": cancel_event},
            # confirm + (model + tools) per step
            "recursion_limit": 2 * self.max_steps + 5,
        }

        steps = 0
        pending: list[ToolCall] = []
        cancelled = False
        try:
            with closing(self.graph.stream(state, config, stream_mode=["updates", "custom"])) as stream:
                for mode, chunk in stream:
                    if cancel_event.is_set():
                        cancelled = True
                        break

                    if mode == "custom":
                        yield chunk
                        continue

                    for node, update in (chunk or {}).items():
                        update = update or {}
                        turns = update.get("new_turns") or []
                        if turns:
                            self.store.append(conversation_id, turns)
                            for t in turns:
                                yield turn_event(t)
                        if "pending" in update:
                            pending = update["pending"] or []
                        steps = update.get("steps", steps)
                        cancelled = cancelled or bool(update.get("cancelled"))
        except Exception as e:
            logger.exception("Exchange failed", extra={"extra": {"conversation_id": conversation_id}})
            yield {"type": "error", "error": f"{type(e).__name__}: {e}"}
        else:
            if pending and not cancelled:
                yield awaiting_event(pending)

        logger.info(
            "Exchange finished",
            extra={"extra": {"conversation_id": conversation_id, "steps": steps, "cancelled": cancelled}},
        )
        yield {"type": "done", "steps": steps, "cancelled": cancelled}
