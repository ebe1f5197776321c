"""
Confirmation gate for tools that need a human decision.

Runs at the start of every exchange over the whole conversation. Gated tool
calls without a recorded result are matched against the caller's decisions:

- no decision yet   -> left pending, nothing runs
- "approved"        -> the gated execution runs once; its result is recorded
- "rejected"        -> the denial result is recorded; nothing runs

A call that already has a result is never touched again, which makes the
pass idempotent. Decisions for unknown call ids and for auto tools are
ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from trip_planner.conversation import APPROVED, REJECTED, ToolCall, Turn, unresolved_calls
from trip_planner.tools.registry import CapabilityRegistry, ToolContext, error_result

logger = logging.getLogger(__name__)

DENIED = "Error: User denied access to tool execution"


@dataclass
class Reconciliation:
    results: list[Turn] = field(default_factory=list)   # new tool turns, in call order
    pending: list[ToolCall] = field(default_factory=list)


def reconcile(
    turns: list[Turn],
    decisions: Mapping[str, str],
    registry: CapabilityRegistry,
    ctx: ToolContext,
) -> Reconciliation:
    out = Reconciliation()
    open_calls = unresolved_calls(turns)
    gated = [c for c in open_calls if registry.is_gated(c.name)]

    known = {c.id for c in open_calls}
    for call_id in decisions:
        if call_id not in known:
            logger.debug("Ignoring decision for unknown or resolved call %s", call_id)

    done: set[str] = set()
    for call in gated:
        if call.id in done:
            continue
        decision = decisions.get(call.id)

        if decision == APPROVED:
            logger.info("Tool call approved", extra={"extra": {"tool": call.name, "call_id": call.id}})
            try:
                result = registry.run_gated(call, ctx)
            except Exception as e:
                logger.exception("Gated tool %s failed", call.name)
                result = error_result(e)
            out.results.append(Turn.tool(call, result, decision=APPROVED))
            done.add(call.id)
        elif decision == REJECTED:
            logger.info("Tool call rejected", extra={"extra": {"tool": call.name, "call_id": call.id}})
            out.results.append(Turn.tool(call, DENIED, decision=REJECTED))
            done.add(call.id)
        else:
            out.pending.append(call)

    return out
