"""
Shared fixtures: settings, an in-memory SQLite database, a scripted chat
model and a fake ``requests`` session for the Amadeus endpoints.
"""

import json
from urllib.parse import urlparse

import pytest
from langchain_core.messages import AIMessageChunk

from trip_planner.config import Settings
from trip_planner.db import init_db, make_engine, make_session_factory
from trip_planner.store import InMemoryConversationStore


# ============================================================================
# Fakes
# ============================================================================


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    Routes requests by URL path. A route is a FakeResponse or a callable
    taking the request params/data and returning one.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _dispatch(self, method, url, payload):
        path = urlparse(url).path
        self.calls.append((method, path, payload))
        route = self.routes.get(path)
        if route is None:
            return FakeResponse(404, {"errors": [{"detail": f"no route for {path}"}]})
        return route(payload) if callable(route) else route

    def post(self, url, data=None, headers=None, timeout=None):
        return self._dispatch("POST", url, data)

    def get(self, url, params=None, headers=None, timeout=None):
        return self._dispatch("GET", url, params)

    def paths(self, method=None):
        return [p for m, p, _ in self.calls if method is None or m == method]


TOKEN_OK = FakeResponse(200, {"access_token": "tok-1234567890", "expires_in": 1799})


class ScriptedChatModel:
    """Replays one scripted response per model call. A response is a list of chunks or an exception."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.bound_tools = None

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = tools
        return self

    def stream(self, messages, config=None, **kwargs):
        self.calls.append(list(messages))
        if not self.responses:
            raise AssertionError("unexpected model call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        yield from response


def text_reply(*parts):
    return [AIMessageChunk(content=p) for p in parts]


def tool_reply(*calls, content=""):
    """calls: (name, args, call_id) tuples, all requested in one assistant message."""
    return [
        AIMessageChunk(
            content=content,
            tool_call_chunks=[
                {"name": name, "args": json.dumps(args), "id": call_id, "index": i}
                for i, (name, args, call_id) in enumerate(calls)
            ],
        )
    ]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings():
    """No Amadeus credentials: mock data mode."""
    return Settings(openai_api_key="sk-test", database_url="sqlite://")


@pytest.fixture
def live_settings():
    return Settings(
        amadeus_client_id="client",
        amadeus_client_secret="secret",
        openai_api_key="sk-test",
        database_url="sqlite://",
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryConversationStore()
