"""Task scheduling tools.

These tools run without user confirmation and talk to the session runtime
passed in through :class:`~src.tools.registry.ToolContext`.  Each returns a
human-readable string (or the raw task list) and never raises: scheduler
failures are logged and reported back to the model as text.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.tools.registry import ToolContext

logger = logging.getLogger(__name__)

# Callback name the runtime invokes when a scheduled task fires.
TASK_CALLBACK = "execute_task"


# ── Schedule specification ───────────────────────────────────────────


class NoSchedule(BaseModel):
    type: Literal["no-schedule"]


class ScheduledAt(BaseModel):
    type: Literal["scheduled"]
    date: datetime = Field(..., description="When the task should run (ISO 8601)")


class DelayedBy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["delayed"]
    delay_in_seconds: int = Field(
        ..., alias="delayInSeconds", ge=0, description="Seconds from now until the task runs",
    )


class CronSchedule(BaseModel):
    type: Literal["cron"]
    cron: str = Field(..., min_length=1, description="Cron expression for recurring tasks")


ScheduleSpec = Annotated[
    NoSchedule | ScheduledAt | DelayedBy | CronSchedule,
    Field(discriminator="type"),
]


class ScheduleTaskArgs(BaseModel):
    when: ScheduleSpec
    description: str = Field(..., description="What the task should do when it runs")


class GetScheduledTasksArgs(BaseModel):
    pass


class CancelScheduledTaskArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId", description="The ID of the task to cancel")


def schedule_input(when: NoSchedule | ScheduledAt | DelayedBy | CronSchedule) -> datetime | int | str | None:
    """Map a schedule spec to the single value the runtime's ``schedule`` takes.

    Returns ``None`` for ``no-schedule``, which is never a valid input.
    """
    if isinstance(when, ScheduledAt):
        return when.date
    if isinstance(when, DelayedBy):
        return when.delay_in_seconds
    if isinstance(when, CronSchedule):
        return when.cron
    return None


# ── Tools ────────────────────────────────────────────────────────────


async def schedule_task(ctx: ToolContext, args: ScheduleTaskArgs) -> str:
    when_value = schedule_input(args.when)
    if when_value is None:
        return "Not a valid schedule input"

    try:
        await ctx.runtime.schedule(when_value, TASK_CALLBACK, args.description)
    except Exception as exc:
        logger.error("Error scheduling task: %s", exc)
        return f"Error scheduling task: {exc}"

    return f'Task scheduled for type "{args.when.type}" : {when_value}'


async def get_scheduled_tasks(ctx: ToolContext, args: GetScheduledTasksArgs) -> str | list:
    try:
        tasks = await ctx.runtime.get_schedules()
    except Exception as exc:
        logger.error("Error listing scheduled tasks: %s", exc)
        return f"Error listing scheduled tasks: {exc}"

    if not tasks:
        return "No scheduled tasks found."
    return tasks


async def cancel_scheduled_task(ctx: ToolContext, args: CancelScheduledTaskArgs) -> str:
    try:
        await ctx.runtime.cancel_schedule(args.task_id)
    except Exception as exc:
        logger.error("Error canceling scheduled task %s: %s", args.task_id, exc)
        return f"Error canceling task {args.task_id}: {exc}"

    return f"Task {args.task_id} has been successfully canceled."
