import json
import logging
import threading
from typing import Optional

import requests
from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request, stream_with_context

from trip_planner.agents.scheduling import TaskScheduler
from trip_planner.config import Settings
from trip_planner.conversation import call_state, iter_tool_calls, tool_results
from trip_planner.db import init_db, make_engine, make_session_factory
from trip_planner.graph.exchange import ChatOrchestrator
from trip_planner.llm.chat_model import build_chat_model
from trip_planner.logging_config import setup_logging
from trip_planner.providers.amadeus_client import AmadeusAuthError, AmadeusClient
from trip_planner.providers.data_source import TravelDataSource
from trip_planner.store import ConversationStore, SqlConversationStore
from trip_planner.tools.catalog import build_registry

logger = logging.getLogger(__name__)

DECISION_VALUES = {"approved", "rejected"}


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ConversationStore] = None,
    orchestrator: Optional[ChatOrchestrator] = None,
    http_session: Optional[requests.Session] = None,
) -> Flask:
    load_dotenv()
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    store = store or SqlConversationStore(session_factory)
    scheduler = TaskScheduler(session_factory)
    orchestrator = orchestrator or ChatOrchestrator(
        store=store,
        registry=build_registry(),
        data_source=TravelDataSource(settings, session=http_session),
        model_factory=lambda: build_chat_model(settings),
        scheduler=scheduler,
    )

    if not settings.has_openai_key:
        logger.error("OPENAI_API_KEY is not set, add it to .env or the environment before chatting")

    app = Flask(__name__)

    @app.post("/chat")
    def chat():
        body = request.get_json(silent=True)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400

        message = body.get("message")
        conversation_id = body.get("conversation_id")
        decisions = body.get("decisions") or {}

        if message is not None and not isinstance(message, str):
            return jsonify({"error": "message must be a string"}), 400
        if conversation_id is not None and not isinstance(conversation_id, str):
            return jsonify({"error": "conversation_id must be a string"}), 400
        if not isinstance(decisions, dict):
            return jsonify({"error": 'decisions must map tool call ids to "approved" or "rejected"'}), 400

        message = (message or "").strip() or None
        accepted = {k: v for k, v in decisions.items() if isinstance(v, str) and v in DECISION_VALUES}
        ignored = [k for k in decisions if k not in accepted]
        if ignored:
            logger.info("Ignoring decisions with unknown values", extra={"extra": {"call_ids": ignored}})
        decisions = accepted
        if not message and not decisions:
            return jsonify({"error": "message or decisions is required"}), 400

        cancel = threading.Event()

        def generate():
            try:
                for event in orchestrator.run(
                    conversation_id=conversation_id,
                    message=message,
                    decisions=decisions,
                    cancel_event=cancel,
                ):
                    yield json.dumps(event, ensure_ascii=False, default=str) + "\n"
            finally:
                # client went away or the exchange ended
                cancel.set()

        return Response(stream_with_context(generate()), mimetype="application/x-ndjson")

    @app.get("/conversations/<conversation_id>/messages")
    def conversation_messages(conversation_id: str):
        turns = store.load(conversation_id)
        results = tool_results(turns)
        states = {c.id: call_state(c, results) for c in iter_tool_calls(turns)}

        out = []
        for t in turns:
            item = t.model_dump(mode="json")
            for tc in item.get("tool_calls") or []:
                tc["state"] = states.get(tc["id"], "requested")
            out.append(item)
        return jsonify({"conversation_id": conversation_id, "messages": out})

    @app.get("/check-open-ai-key")
    def check_open_ai_key():
        return jsonify({"success": settings.has_openai_key})

    @app.get("/check-amadeus")
    def check_amadeus():
        """Readiness check: credentials present and a token can be fetched."""
        if not settings.has_amadeus_credentials:
            return jsonify({"ok": False, "reason": "Missing AMADEUS credentials"}), 400

        client = AmadeusClient(settings, session=http_session)
        try:
            token = client.fetch_token()
        except AmadeusAuthError as e:
            # no status means the request itself never completed
            return jsonify({"ok": False, "hasKeys": True, "error": e.body or str(e)}), 502 if e.status else 500
        except Exception as e:
            logger.exception("Amadeus readiness check failed")
            return jsonify({"ok": False, "hasKeys": True, "error": str(e)}), 500

        return jsonify({
            "ok": True,
            "hasKeys": True,
            "tokenPreview": str(token.get("access_token") or "")[:8],
        })

    @app.cli.command("run-due-tasks")
    def run_due_tasks():
        """Append a message for every scheduled task that is due."""
        fired = scheduler.run_due(store)
        print(f"Ran {fired} scheduled task(s)")

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
