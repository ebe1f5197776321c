"""
Scheduled reminder tasks.

A task belongs to the conversation that created it. When it comes due, a
user turn "Running scheduled task: <description>" is appended to that
conversation; one-shot tasks are then removed and cron tasks move on to
their next run.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal, Optional

from croniter import croniter
from dateutil import parser as dtparser
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from trip_planner.conversation import Turn
from trip_planner.models import ScheduledTask
from trip_planner.store import ConversationStore

logger = logging.getLogger(__name__)

INVALID_SCHEDULE = "Not a valid schedule input"


class When(BaseModel):
    type: Literal["scheduled", "delayed", "cron", "no-schedule"]
    date: Optional[str] = Field(default=None, description="ISO date-time, for type=scheduled")
    delay_in_seconds: Optional[int] = Field(default=None, ge=0, description="for type=delayed")
    cron: Optional[str] = Field(default=None, description="cron expression, for type=cron")


class ScheduleTaskParams(BaseModel):
    description: str
    when: When


class ListTasksParams(BaseModel):
    pass


class CancelTaskParams(BaseModel):
    task_id: str = Field(description="The ID of the task to cancel")


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskScheduler:
    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = _utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def _first_run(self, when: When, now: datetime) -> tuple[datetime, str]:
        if when.type == "scheduled":
            if not when.date:
                raise ValueError("a scheduled task needs a date")
            return _utc(dtparser.isoparse(when.date)), when.date
        if when.type == "delayed":
            if when.delay_in_seconds is None:
                raise ValueError("a delayed task needs delay_in_seconds")
            return now + timedelta(seconds=when.delay_in_seconds), str(when.delay_in_seconds)
        if when.type == "cron":
            if not when.cron or not croniter.is_valid(when.cron):
                raise ValueError(f"invalid cron expression: {when.cron!r}")
            return croniter(when.cron, now).get_next(datetime), when.cron
        raise ValueError(INVALID_SCHEDULE)

    def schedule(self, conversation_id: str, description: str, when: When) -> str:
        if when.type == "no-schedule":
            return INVALID_SCHEDULE

        now = self.clock()
        try:
            run_at, schedule_input = self._first_run(when, now)
        except ValueError as e:
            logger.warning("Error scheduling task: %s", e)
            return f"Error scheduling task: {e}"

        with self.session_factory() as db:
            db.add(ScheduledTask(
                id=uuid.uuid4().hex[:12],
                conversation_id=conversation_id,
                description=description,
                kind=when.type,
                when=schedule_input,
                next_run_at=run_at,
            ))
            db.commit()

        logger.info(
            "Task scheduled",
            extra={"extra": {"conversation_id": conversation_id, "type": when.type, "input": schedule_input}},
        )
        return f'Task scheduled for type "{when.type}" : {schedule_input}'

    def list_tasks(self, conversation_id: str) -> list[dict]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(ScheduledTask)
                .where(ScheduledTask.conversation_id == conversation_id)
                .order_by(ScheduledTask.next_run_at)
            ).all()
            return [
                {
                    "id": r.id,
                    "description": r.description,
                    "type": r.kind,
                    "when": r.when,
                    "next_run_at": _utc(r.next_run_at).isoformat(),
                }
                for r in rows
            ]

    def cancel(self, task_id: str, conversation_id: Optional[str] = None) -> bool:
        with self.session_factory() as db:
            task = db.get(ScheduledTask, task_id)
            if task is None or (conversation_id and task.conversation_id != conversation_id):
                return False
            db.delete(task)
            db.commit()
        logger.info("Task canceled", extra={"extra": {"task_id": task_id}})
        return True

    def run_due(self, store: ConversationStore, now: Optional[datetime] = None) -> int:
        """Fire every task whose next run is at or before ``now``. Returns how many fired."""
        now = _utc(now or self.clock())
        with self.session_factory() as db:
            due = db.scalars(
                select(ScheduledTask)
                .where(ScheduledTask.next_run_at <= now)
                .order_by(ScheduledTask.next_run_at)
            ).all()
            fired = [(task.conversation_id, task.description) for task in due]
            for task in due:
                if task.kind == "cron":
                    task.next_run_at = croniter(task.when, now).get_next(datetime)
                else:
                    db.delete(task)
            db.commit()

        # tasks are consumed before their turns are written, so a task fires at most once
        for conversation_id, description in fired:
            store.append(conversation_id, [Turn.user(f"Running scheduled task: {description}")])

        if fired:
            logger.info("Ran scheduled tasks", extra={"extra": {"count": len(fired)}})
        return len(fired)


def list_tasks_reply(scheduler: TaskScheduler, conversation_id: str):
    tasks = scheduler.list_tasks(conversation_id)
    if not tasks:
        return "No scheduled tasks found."
    return tasks


def cancel_task_reply(scheduler: TaskScheduler, conversation_id: str, task_id: str) -> str:
    if scheduler.cancel(task_id, conversation_id):
        return f"Task {task_id} has been successfully canceled."
    return f"Error canceling task {task_id}: no such task"
