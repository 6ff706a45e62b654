"""The tools offered to the model.

Tools declared with :class:`ConfirmationRequired` are shown to the user for
approval before they run; their implementation lives in ``EXECUTIONS``.
Everything else runs as soon as the model asks for it.
"""

from __future__ import annotations

from src.tools import docs, general, scheduling
from src.tools.registry import (
    AutoExecuting,
    ConfirmationRequired,
    ToolDefinition,
    ToolDispatcher,
    ToolFunction,
    ToolRegistry,
)

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="get_weather_information",
        description="show the weather in a given city to the user",
        parameters=general.WeatherArgs,
        policy=ConfirmationRequired(),
    ),
    ToolDefinition(
        name="get_local_time",
        description="get the local time for a specified location",
        parameters=general.LocalTimeArgs,
        policy=AutoExecuting(general.get_local_time),
    ),
    ToolDefinition(
        name="schedule_task",
        description="A tool to schedule a task to be executed at a later time",
        parameters=scheduling.ScheduleTaskArgs,
        policy=AutoExecuting(scheduling.schedule_task),
    ),
    ToolDefinition(
        name="get_scheduled_tasks",
        description="List all tasks that have been scheduled",
        parameters=scheduling.GetScheduledTasksArgs,
        policy=AutoExecuting(scheduling.get_scheduled_tasks),
    ),
    ToolDefinition(
        name="cancel_scheduled_task",
        description="Cancel a scheduled task using its ID",
        parameters=scheduling.CancelScheduledTaskArgs,
        policy=AutoExecuting(scheduling.cancel_scheduled_task),
    ),
    ToolDefinition(
        name="resolve_library_id",
        description="Resolve a library name into a Context7-compatible library ID",
        parameters=docs.ResolveLibraryIdArgs,
        policy=ConfirmationRequired(),
    ),
    ToolDefinition(
        name="get_library_docs",
        description="Fetch up-to-date documentation for a library using Context7",
        parameters=docs.GetLibraryDocsArgs,
        policy=ConfirmationRequired(),
    ),
)

EXECUTIONS: dict[str, ToolFunction] = {
    "get_weather_information": general.get_weather_information,
    "resolve_library_id": docs.resolve_library_id,
    "get_library_docs": docs.get_library_docs,
}


def build_registry() -> ToolRegistry:
    return ToolRegistry(TOOL_DEFINITIONS)


def build_dispatcher() -> ToolDispatcher:
    """Registry plus executions table, checked for consistency."""
    return ToolDispatcher(build_registry(), EXECUTIONS)
