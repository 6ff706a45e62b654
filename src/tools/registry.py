"""Tool registry and execution dispatcher.

Every tool the model may call is described by a :class:`ToolDefinition`
whose ``policy`` is one of two variants:

* :class:`AutoExecuting` - carries the tool function; the call runs as soon
  as the model requests it.
* :class:`ConfirmationRequired` - carries nothing; the call is held until the
  user approves it, then the same-named function from the executions table
  runs.

The :class:`ToolDispatcher` owns both lookups.  It validates arguments
against the tool's pydantic model before any side effect and converts every
failure raised by a tool function into an error :class:`ExecutionResult`, so
a tool can never break the conversation loop.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import asdict, dataclass, is_dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from src.services.context7_client import Context7Client
    from src.services.session_runtime import AgentRuntime

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────


class ToolError(Exception):
    """Base class for registry and dispatcher errors."""


class ToolValidationError(ToolError):
    """Arguments do not satisfy the tool's parameter schema."""

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]):
        self.tool_name = tool_name
        self.errors = errors
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or '<root>'}: {err.get('msg')}"
            for err in errors
        )
        super().__init__(f"Invalid arguments for {tool_name}: {details}")


class UnknownToolError(ToolError):
    """No tool (or no execution entry) is registered under this name."""


class ConfirmationRequiredError(ToolError):
    """A confirmation-required tool was executed without user approval."""


class RegistryConsistencyError(ToolError):
    """The registry and the executions table disagree."""


# ── Data model ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Everything a tool function may touch, passed in explicitly per call."""

    session_id: str
    runtime: AgentRuntime
    docs: Context7Client


ToolFunction = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class AutoExecuting:
    fn: ToolFunction


@dataclass(frozen=True, slots=True)
class ConfirmationRequired:
    pass


ExecutionPolicy = AutoExecuting | ConfirmationRequired


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Name, description, parameter model and execution policy of a tool."""

    name: str
    description: str
    parameters: type[BaseModel]
    policy: ExecutionPolicy

    @property
    def requires_confirmation(self) -> bool:
        return isinstance(self.policy, ConfirmationRequired)

    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the parameters, using the wire (alias) names."""
        return self.parameters.model_json_schema(by_alias=True)


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A model-requested call, before validation."""

    tool_name: str
    arguments: Mapping[str, Any]
    tool_call_id: str = ""


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of one tool execution.  Never raised, always returned."""

    tool_name: str
    content: Any
    is_error: bool = False

    @classmethod
    def success(cls, tool_name: str, content: Any) -> ExecutionResult:
        return cls(tool_name, content)

    @classmethod
    def failure(cls, tool_name: str, message: str) -> ExecutionResult:
        return cls(tool_name, message, is_error=True)

    @property
    def text(self) -> str:
        """The content rendered for a tool message (structured data as JSON)."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(_to_jsonable(self.content), indent=2, default=str)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list | tuple):
        return [_to_jsonable(v) for v in value]
    return value


# ── Registry ─────────────────────────────────────────────────────────


class ToolRegistry:
    """Ordered-by-declaration mapping from tool name to definition."""

    def __init__(self, definitions: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._tools[definition.name] = definition

    def get(self, name: str) -> ToolDefinition:
        """Get a tool by name.

        Raises:
            UnknownToolError: If the tool is not registered.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(f"Tool not found: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def requires_confirmation(self, name: str) -> bool:
        return self.get(name).requires_confirmation

    def validate(self, name: str, arguments: Mapping[str, Any] | None) -> BaseModel:
        """Parse *arguments* with the tool's parameter model.

        Raises:
            UnknownToolError: If the tool is not registered.
            ToolValidationError: If the arguments do not fit the schema.
        """
        definition = self.get(name)
        try:
            return definition.parameters.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            raise ToolValidationError(name, exc.errors()) from exc

    def to_model_tools(self) -> list[dict[str, Any]]:
        """Tool specs in the Anthropic format, for ``bind_tools``."""
        return [
            {
                "name": d.name,
                "description": d.description,
                "input_schema": d.input_schema(),
            }
            for d in self._tools.values()
        ]


# ── Dispatcher ───────────────────────────────────────────────────────


class ToolDispatcher:
    """Runs tool calls, honouring each tool's execution policy.

    *executions* maps every confirmation-required tool name to the function
    that runs once the user approved the call.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        executions: Mapping[str, ToolFunction],
    ) -> None:
        self._registry = registry
        self._executions = dict(executions)
        self._check_consistency()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def _check_consistency(self) -> None:
        missing = [
            d.name for d in self._registry.definitions()
            if d.requires_confirmation and d.name not in self._executions
        ]
        if missing:
            raise RegistryConsistencyError(
                f"Confirmation-required tools without an execution entry: {', '.join(missing)}"
            )
        auto = [
            name for name in self._executions
            if name in self._registry and not self._registry.requires_confirmation(name)
        ]
        if auto:
            raise RegistryConsistencyError(
                f"Auto-executing tools must not have an execution entry: {', '.join(auto)}"
            )
        orphans = [name for name in self._executions if name not in self._registry]
        if orphans:
            logger.warning("Execution entries with no registered tool: %s", orphans)

    def _resolve(self, definition: ToolDefinition) -> ToolFunction:
        if isinstance(definition.policy, AutoExecuting):
            return definition.policy.fn
        fn = self._executions.get(definition.name)
        if fn is None:
            # Guarded by _check_consistency; reaching this is a programming error.
            raise UnknownToolError(f"No execution registered for {definition.name}")
        return fn

    async def execute(
        self,
        tool_name: str,
        arguments: Mapping[str, Any] | None,
        ctx: ToolContext,
        *,
        approved: bool = False,
    ) -> ExecutionResult:
        """Validate and run one tool call.

        Raises:
            UnknownToolError: If *tool_name* is not registered.
            ToolValidationError: If the arguments do not fit the schema.
            ConfirmationRequiredError: If the tool needs approval and
                *approved* is false.

        Every exception raised by the tool function itself is returned as a
        failed :class:`ExecutionResult`.
        """
        definition = self._registry.get(tool_name)
        args = self._registry.validate(tool_name, arguments)
        if definition.requires_confirmation and not approved:
            raise ConfirmationRequiredError(f"{tool_name} requires user approval")

        fn = self._resolve(definition)
        try:
            content = await fn(ctx, args)
        except Exception as exc:
            logger.exception("Tool %s failed", tool_name)
            return ExecutionResult.failure(tool_name, f"Error executing {tool_name}: {exc}")
        return ExecutionResult.success(tool_name, content)

    async def execute_request(
        self, request: ToolCallRequest, ctx: ToolContext, *, approved: bool = False,
    ) -> ExecutionResult:
        return await self.execute(request.tool_name, request.arguments, ctx, approved=approved)
