"""
Capability registry.

A capability is a tool the model may call: a name, a description, a pydantic
parameter schema and an execution mode. ``Auto(fn)`` tools run as soon as the
model asks for them; ``Gated()`` tools are only declared here, and their
implementation lives in a separate execution table that is consulted by the
confirmation gate once a human has approved the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel, ValidationError

from trip_planner.conversation import ToolCall
from trip_planner.providers.data_source import TravelDataSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """What a running tool may touch besides its own arguments."""

    conversation_id: str
    data_source: TravelDataSource
    scheduler: Optional[Any] = None  # agents.scheduling.TaskScheduler


ToolFn = Callable[[BaseModel, ToolContext], Any]


@dataclass(frozen=True)
class Auto:
    fn: ToolFn


@dataclass(frozen=True)
class Gated:
    pass


Mode = Union[Auto, Gated]


@dataclass(frozen=True)
class Capability:
    name: str
    description: str
    schema: type[BaseModel]
    mode: Mode

    @property
    def gated(self) -> bool:
        return isinstance(self.mode, Gated)


class ToolValidationError(ValueError):
    def __init__(self, tool: str, errors: list[dict]):
        super().__init__(f"Invalid arguments for {tool}")
        self.tool = tool
        self.errors = errors

    def to_result(self) -> dict:
        return {"error": "invalid_arguments", "tool": self.tool, "details": self.errors}


class UnknownToolError(LookupError):
    def __init__(self, tool: str):
        super().__init__(f"Unknown tool: {tool}")
        self.tool = tool


def error_result(e: Exception) -> dict:
    if isinstance(e, ToolValidationError):
        return e.to_result()
    return {"error": f"{type(e).__name__}: {e}"}


class CapabilityRegistry:
    def __init__(self, capabilities: Iterable[Capability], executions: Mapping[str, ToolFn]):
        self._capabilities = {c.name: c for c in capabilities}
        self._executions = dict(executions)

        gated = {name for name, c in self._capabilities.items() if c.gated}
        missing = gated - set(self._executions)
        if missing:
            raise ValueError(f"Gated tools without an execution: {sorted(missing)}")
        stray = set(self._executions) - gated
        if stray:
            raise ValueError(f"Executions for tools that are not gated: {sorted(stray)}")

    def __contains__(self, name: str) -> bool:
        return name in self._capabilities

    def __iter__(self):
        return iter(self._capabilities.values())

    @property
    def names(self) -> list[str]:
        return list(self._capabilities)

    @property
    def gated_names(self) -> list[str]:
        return [c.name for c in self if c.gated]

    def get(self, name: str) -> Capability:
        try:
            return self._capabilities[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def is_gated(self, name: str) -> bool:
        c = self._capabilities.get(name)
        return bool(c and c.gated)

    def validate(self, name: str, args: Optional[dict]) -> BaseModel:
        """Strict validation: schema defaults are filled in, values are never coerced ("2" is not 2)."""
        capability = self.get(name)
        try:
            return capability.schema.model_validate(args or {}, strict=True)
        except ValidationError as e:
            raise ToolValidationError(
                name, e.errors(include_url=False, include_context=False, include_input=False)
            ) from e

    def run_auto(self, call: ToolCall, ctx: ToolContext) -> Any:
        """Validate and run an auto tool. Raises on validation or tool failure."""
        capability = self.get(call.name)
        if not isinstance(capability.mode, Auto):
            raise ValueError(f"{call.name} requires confirmation")
        params = self.validate(call.name, call.args)
        return capability.mode.fn(params, ctx)

    def run_gated(self, call: ToolCall, ctx: ToolContext) -> Any:
        """Run the execution behind an approved gated call. Only the confirmation gate calls this."""
        if not self.is_gated(call.name):
            raise ValueError(f"{call.name} is not a gated tool")
        params = self.validate(call.name, call.args)
        return self._executions[call.name](params, ctx)

    def tool_specs(self) -> list[dict]:
        """OpenAI-style function specs for ``bind_tools``."""
        specs = []
        for c in self:
            spec = convert_to_openai_tool(c.schema)
            spec["function"]["name"] = c.name
            spec["function"]["description"] = c.description
            specs.append(spec)
        return specs
