"""
Conversation persistence.

The orchestrator only ever loads a conversation, appends turns to it, or
queries it. ``SqlConversationStore`` keeps turns in the ``messages`` table;
``InMemoryConversationStore`` is used by tests and local experiments.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from trip_planner.conversation import Role, Turn
from trip_planner.models import Conversation, Message

logger = logging.getLogger(__name__)

_META_FIELDS = {"tool_calls", "tool_call_id", "name", "result", "decision"}


class ConversationStore(ABC):
    @abstractmethod
    def load(self, conversation_id: str) -> list[Turn]:
        ...

    @abstractmethod
    def append(self, conversation_id: str, turns: Iterable[Turn]) -> None:
        ...

    def query(
        self,
        conversation_id: str,
        role: Optional[Role] = None,
        limit: Optional[int] = None,
    ) -> list[Turn]:
        """Turns of a conversation, optionally filtered by role; ``limit`` keeps the most recent."""
        turns = self.load(conversation_id)
        if role:
            turns = [t for t in turns if t.role == role]
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return turns


class InMemoryConversationStore(ConversationStore):
    def __init__(self):
        self._turns: dict[str, list[Turn]] = defaultdict(list)
        self._lock = threading.Lock()

    def load(self, conversation_id: str) -> list[Turn]:
        with self._lock:
            return list(self._turns.get(conversation_id, []))

    def append(self, conversation_id: str, turns: Iterable[Turn]) -> None:
        with self._lock:
            self._turns[conversation_id].extend(turns)


class SqlConversationStore(ConversationStore):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_row(conversation_id: str, turn: Turn) -> Message:
        meta = turn.model_dump(mode="json", include=_META_FIELDS, exclude_none=True)
        return Message(
            turn_id=turn.id,
            conversation_id=conversation_id,
            role=turn.role,
            content=turn.content,
            meta=meta,
            created_at=turn.created_at,
        )

    @staticmethod
    def _to_turn(row: Message) -> Turn:
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        data = dict(row.meta or {})
        data.update(id=row.turn_id, role=row.role, content=row.content or "")
        if created_at is not None:
            data["created_at"] = created_at
        return Turn.model_validate(data)

    def load(self, conversation_id: str) -> list[Turn]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.id)
            ).all()
            return [self._to_turn(r) for r in rows]

    def append(self, conversation_id: str, turns: Iterable[Turn]) -> None:
        turns = list(turns)
        if not turns:
            return
        with self.session_factory() as db:
            if db.get(Conversation, conversation_id) is None:
                db.add(Conversation(id=conversation_id))
                db.flush()
            for turn in turns:
                db.add(self._to_row(conversation_id, turn))
            db.commit()
        logger.debug(
            "Appended turns",
            extra={"extra": {"conversation_id": conversation_id, "count": len(turns)}},
        )
