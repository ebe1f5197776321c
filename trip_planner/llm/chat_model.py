import json
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from trip_planner.config import Settings
from trip_planner.conversation import Turn, tool_results


def build_chat_model(settings: Settings) -> ChatOpenAI:
    # base_url=None keeps the provider default
    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        base_url=settings.gateway_base_url,
        temperature=0,
        streaming=True,
    )


def tool_content(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def to_langchain_messages(system_prompt: str, turns: list[Turn]) -> list[BaseMessage]:
    """
    Conversation turns -> chat messages.

    Tool results are placed right after the assistant message that requested
    them, wherever they sit in the history. Calls that have no result yet are
    left out, since the provider rejects unanswered tool calls.
    """
    results = tool_results(turns)
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]

    for t in turns:
        if t.role == "user":
            messages.append(HumanMessage(content=t.content))
        elif t.role == "assistant":
            answered = [c for c in t.tool_calls if c.id in results]
            if not t.content and not answered:
                continue
            messages.append(AIMessage(
                content=t.content,
                tool_calls=[{"name": c.name, "args": c.args, "id": c.id} for c in answered],
            ))
            for c in answered:
                messages.append(ToolMessage(
                    content=tool_content(results[c.id].result),
                    tool_call_id=c.id,
                    name=c.name,
                ))
    return messages
