"""
Tests for conversation persistence and history to chat message conversion.
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from trip_planner.conversation import ToolCall, Turn, call_state, tool_results, unresolved_calls
from trip_planner.llm.chat_model import to_langchain_messages
from trip_planner.store import SqlConversationStore


def _conversation():
    search = ToolCall(id="call_s", name="search_flights", args={"origin": "SFO", "destination": "LIS"})
    book = ToolCall(id="call_b", name="book_flight", args={"flight_id": "FL-2"})
    return [
        Turn.user("Find me a flight to Lisbon"),
        Turn.assistant("", [search]),
        Turn.tool(search, [{"id": "FL-1", "price_usd": 450}]),
        Turn.assistant("FL-2 is cheapest. Book it?", [book]),
    ]


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, session_factory):
    if request.param == "memory":
        return memory_store
    return SqlConversationStore(session_factory)


class TestStore:
    def test_unknown_conversation_is_empty(self, store):
        assert store.load("nope") == []

    def test_round_trip(self, store):
        turns = _conversation()
        store.append("c1", turns[:2])
        store.append("c1", turns[2:])

        loaded = store.load("c1")
        assert [t.id for t in loaded] == [t.id for t in turns]
        assert [t.role for t in loaded] == ["user", "assistant", "tool", "assistant"]
        assert loaded[1].tool_calls[0].args == {"origin": "SFO", "destination": "LIS"}
        assert loaded[2].tool_call_id == "call_s"
        assert loaded[2].result == [{"id": "FL-1", "price_usd": 450}]
        assert loaded[3].content == "FL-2 is cheapest. Book it?"
        assert loaded[0].created_at.tzinfo is not None

    def test_conversations_are_isolated(self, store):
        store.append("c1", [Turn.user("one")])
        store.append("c2", [Turn.user("two")])
        assert [t.content for t in store.load("c1")] == ["one"]

    def test_query(self, store):
        store.append("c1", _conversation())

        assert [t.role for t in store.query("c1", role="assistant")] == ["assistant", "assistant"]
        assert [t.role for t in store.query("c1", limit=2)] == ["tool", "assistant"]
        assert store.query("c1", limit=0) == []


class TestCallState:
    def test_states(self):
        turns = _conversation()
        results = tool_results(turns)
        search, book = turns[1].tool_calls[0], turns[3].tool_calls[0]

        assert call_state(search, results) == "completed"
        assert call_state(book, results) == "requested"
        assert [c.id for c in unresolved_calls(turns)] == ["call_b"]

        rejected = turns + [Turn.tool(book, "denied", decision="rejected")]
        assert call_state(book, tool_results(rejected)) == "rejected"


class TestLangchainMessages:
    def test_unanswered_calls_are_left_out(self):
        messages = to_langchain_messages("system", _conversation())

        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, ToolMessage, AIMessage]
        assert messages[2].tool_calls[0]["id"] == "call_s"
        assert messages[3].tool_call_id == "call_s"
        assert '"FL-1"' in messages[3].content
        assert messages[4].tool_calls == []

    def test_results_follow_their_request(self):
        turns = _conversation()
        book = turns[3].tool_calls[0]
        # the approval arrives after a new user message
        turns += [Turn.user("yes please"), Turn.tool(book, {"confirmation_id": "CONF-FLT-FL-2-1"})]

        messages = to_langchain_messages("system", turns)

        kinds = [type(m).__name__ for m in messages]
        assert kinds == ["SystemMessage", "HumanMessage", "AIMessage", "ToolMessage", "AIMessage", "ToolMessage", "HumanMessage"]
        assert messages[5].tool_call_id == "call_b"

    def test_empty_assistant_turn_is_skipped(self):
        messages = to_langchain_messages("system", [Turn.user("hi"), Turn.assistant("")])
        assert [type(m) for m in messages] == [SystemMessage, HumanMessage]
