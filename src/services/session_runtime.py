"""Per-session agent runtime: the handle tools use for scheduled tasks.

The hosted runtime that would persist schedules and fire them is an external
collaborator.  :class:`AgentRuntime` is the seam tools are written against,
and :class:`SessionRuntime` is the in-process implementation used by the
API server and the CLI.  It records schedules for the lifetime of the
process but never fires them.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Raised when a schedule cannot be created, listed or cancelled."""


class ScheduleNotFoundError(SchedulingError):
    """Raised when cancelling a task id that is not scheduled."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"No scheduled task with id {task_id!r}")


@dataclass(frozen=True, slots=True)
class Schedule:
    """A task recorded by the runtime.

    ``type`` is ``"scheduled"``, ``"delayed"`` or ``"cron"``; ``time`` is the
    next fire time for the first two and ``None`` for cron schedules.
    """

    id: str
    callback: str
    payload: str
    type: str
    time: datetime | None = None
    delay_in_seconds: int | None = None
    cron: str | None = None


@runtime_checkable
class AgentRuntime(Protocol):
    """Scheduling primitives provided by the session runtime."""

    async def schedule(
        self, when: datetime | int | str, callback: str, payload: str,
    ) -> Schedule:
        ...

    async def get_schedules(self) -> list[Schedule]:
        ...

    async def cancel_schedule(self, task_id: str) -> None:
        ...


class SessionRuntime:
    """In-memory :class:`AgentRuntime` for a single chat session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._schedules: dict[str, Schedule] = {}

    async def schedule(
        self, when: datetime | int | str, callback: str, payload: str,
    ) -> Schedule:
        """Record a task.

        *when* selects the schedule type: a ``datetime`` fires once at that
        time, an ``int`` fires once after that many seconds, and a ``str`` is
        a cron expression.
        """
        task_id = uuid.uuid4().hex[:12]
        # bool is an int subclass but never a valid delay
        if isinstance(when, datetime):
            fire_at = when if when.tzinfo else when.replace(tzinfo=UTC)
            schedule = Schedule(task_id, callback, payload, "scheduled", time=fire_at)
        elif isinstance(when, int) and not isinstance(when, bool):
            if when < 0:
                raise SchedulingError(f"Delay must not be negative, got {when}")
            schedule = Schedule(
                task_id, callback, payload, "delayed",
                time=datetime.now(UTC) + timedelta(seconds=when),
                delay_in_seconds=when,
            )
        elif isinstance(when, str) and when.strip():
            schedule = Schedule(task_id, callback, payload, "cron", cron=when.strip())
        else:
            raise SchedulingError(f"Invalid schedule value: {when!r}")

        self._schedules[task_id] = schedule
        logger.info(
            "Session %s: scheduled %s task %s (%s)",
            self.session_id, schedule.type, task_id, callback,
        )
        return schedule

    async def get_schedules(self) -> list[Schedule]:
        return list(self._schedules.values())

    async def cancel_schedule(self, task_id: str) -> None:
        if self._schedules.pop(task_id, None) is None:
            raise ScheduleNotFoundError(task_id)
        logger.info("Session %s: cancelled task %s", self.session_id, task_id)


class SessionStore:
    """Lazily creates and keeps one :class:`SessionRuntime` per session id."""

    def __init__(self) -> None:
        self._runtimes: dict[str, SessionRuntime] = {}
        self._lock = threading.Lock()

    def runtime_for(self, session_id: str) -> SessionRuntime:
        with self._lock:
            runtime = self._runtimes.get(session_id)
            if runtime is None:
                runtime = SessionRuntime(session_id)
                self._runtimes[session_id] = runtime
                logger.debug("Created runtime for session %s", session_id)
            return runtime

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._runtimes

    def __len__(self) -> int:
        return len(self._runtimes)
