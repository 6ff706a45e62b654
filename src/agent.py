"""LangGraph-based documentation agent.

Architecture:
  The agent is a LangGraph StateGraph with three nodes:

    1. **chatbot**   - Claude with the tool registry bound, decides whether
                       to answer or to call tools
    2. **tools**     - runs auto-executing tool calls immediately and parks
                       confirmation-required calls as *pending approvals*
    3. **approval**  - pauses the graph with ``interrupt()`` until the user
                       approves or denies each pending call, then runs the
                       approved ones through the dispatcher

  Routing:
    chatbot → (has tool calls?) → tools → (pending?)    → approval → chatbot
                                        → (no pending?) → chatbot
            → (no tool calls?)  → END

  Memory:
    Conversation state is checkpointed per session with LangGraph's
    MemorySaver.  The session id doubles as the thread id and selects the
    session runtime handed to every tool call.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.types import Command, interrupt
from typing_extensions import TypedDict

from src.config import ANTHROPIC_API_KEY, MODEL_NAME
from src.prompts import get_system_prompt
from src.services.context7_client import Context7Client
from src.services.session_runtime import SessionStore
from src.tools.catalog import build_dispatcher
from src.tools.registry import (
    ExecutionResult,
    ToolContext,
    ToolDispatcher,
    ToolError,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

# Tool result sent to the model when the user rejects a call.
DENIAL_MESSAGE = "Error: User denied access to tool execution"


class NoPendingApprovalError(Exception):
    """Raised when approval decisions arrive but nothing is waiting for them."""


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph.

    ``pending_approvals`` holds the confirmation-required calls from the
    latest model turn, each as ``{"tool_call_id", "tool_name", "arguments"}``.
    It is emptied once the approval node has answered every one of them.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    pending_approvals: list[dict[str, Any]]


@dataclass
class TurnResult:
    """What one call into the agent produced for the user."""

    reply: str
    pending_approvals: list[dict[str, Any]] = field(default_factory=list)

    @property
    def awaiting_approval(self) -> bool:
        return bool(self.pending_approvals)


ContextFactory = Callable[[str], ToolContext]


# ── LLM builder ──────────────────────────────────────────────────────


def _build_llm(registry: ToolRegistry):
    """Build the Claude chat model with every registered tool bound."""
    llm = ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=4096,
    )
    return llm.bind_tools(registry.to_model_tools())


# ── Helpers ──────────────────────────────────────────────────────────


def _session_id(config: RunnableConfig) -> str:
    return config["configurable"]["thread_id"]


def _tool_message(result: ExecutionResult, tool_call_id: str) -> ToolMessage:
    return ToolMessage(
        content=result.text,
        tool_call_id=tool_call_id,
        name=result.tool_name,
        status="error" if result.is_error else "success",
    )


def _denial(call: Mapping[str, Any]) -> ToolMessage:
    return ToolMessage(
        content=DENIAL_MESSAGE,
        tool_call_id=call["tool_call_id"],
        name=call["tool_name"],
        status="error",
    )


def message_text(message: AnyMessage) -> str:
    """Plain text of a message whose content may be a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


async def resolve_approvals(
    dispatcher: ToolDispatcher,
    pending: list[dict[str, Any]],
    decisions: Mapping[str, bool],
    ctx: ToolContext,
) -> list[ToolMessage]:
    """Run approved calls and answer denied (or undecided) ones.

    Every pending call gets exactly one tool message back.
    """
    messages: list[ToolMessage] = []
    for call in pending:
        call_id = call["tool_call_id"]
        name = call["tool_name"]
        if not decisions.get(call_id, False):
            logger.info("Session %s: user denied %s (%s)", ctx.session_id, name, call_id)
            messages.append(_denial(call))
            continue

        logger.info("Session %s: user approved %s (%s)", ctx.session_id, name, call_id)
        try:
            result = await dispatcher.execute(name, call["arguments"], ctx, approved=True)
        except ToolError as exc:
            logger.warning("Approved call %s rejected: %s", name, exc)
            result = ExecutionResult.failure(name, str(exc))
        messages.append(_tool_message(result, call_id))
    return messages


# ── Node: chatbot ────────────────────────────────────────────────────


def _make_chatbot_node(registry: ToolRegistry):
    """Create the chatbot node.

    The LLM + tool bindings are captured in the closure so that repeated
    node invocations (chatbot -> tools -> chatbot -> ...) share one client.
    """
    llm_with_tools = _build_llm(registry)

    async def chatbot_node(state: AgentState) -> dict:
        logger.debug("chatbot node invoked - model: %s", MODEL_NAME)
        system = SystemMessage(content=get_system_prompt())
        t0 = time.perf_counter()
        response = await llm_with_tools.ainvoke([system] + state["messages"])
        logger.debug("chatbot responded in %.0fms", (time.perf_counter() - t0) * 1000)
        return {"messages": [response]}

    return chatbot_node


# ── Node: tools ──────────────────────────────────────────────────────


def _make_tools_node(dispatcher: ToolDispatcher, context_for: ContextFactory):
    """Create the node that runs auto tools and queues the rest for approval."""
    registry = dispatcher.registry

    async def tools_node(state: AgentState, config: RunnableConfig) -> dict:
        ctx = context_for(_session_id(config))
        last_message = state["messages"][-1]
        messages: list[ToolMessage] = []
        pending: list[dict[str, Any]] = []

        for call in getattr(last_message, "tool_calls", None) or []:
            name = call["name"]
            args = call.get("args") or {}
            call_id = call["id"]
            try:
                if registry.requires_confirmation(name):
                    # Reject bad arguments now rather than after the user approved them
                    registry.validate(name, args)
                    pending.append({"tool_call_id": call_id, "tool_name": name, "arguments": args})
                    logger.info("Session %s: %s awaits approval", ctx.session_id, name)
                    continue
                result = await dispatcher.execute(name, args, ctx)
            except ToolError as exc:
                logger.warning("Tool call %s rejected: %s", name, exc)
                result = ExecutionResult.failure(name, str(exc))
            messages.append(_tool_message(result, call_id))

        return {"messages": messages, "pending_approvals": pending}

    return tools_node


# ── Node: approval ───────────────────────────────────────────────────


def _make_approval_node(dispatcher: ToolDispatcher, context_for: ContextFactory):
    """Create the node that waits for the user's decisions.

    ``interrupt()`` suspends the run and hands the pending calls to the
    caller; the run resumes with ``Command(resume={tool_call_id: bool})``
    and the node executes from the top again with those decisions.
    """

    async def approval_node(state: AgentState, config: RunnableConfig) -> dict:
        pending = state.get("pending_approvals") or []
        decisions = interrupt({"pending_approvals": pending})
        ctx = context_for(_session_id(config))
        messages = await resolve_approvals(dispatcher, pending, decisions or {}, ctx)
        return {"messages": messages, "pending_approvals": []}

    return approval_node


# ── Conditional edges ────────────────────────────────────────────────


def should_use_tools(state: AgentState) -> str:
    """Check if the last message has tool calls; if so, route to tools node."""
    last_message = state["messages"][-1]
    if hasattr(last_message, "tool_calls") and last_message.tool_calls:
        return "tools"
    return END


def route_after_tools(state: AgentState) -> str:
    """Pause for approval when any call is waiting on the user."""
    if state.get("pending_approvals"):
        return "approval"
    return "chatbot"


# ── Graph assembly ───────────────────────────────────────────────────


def create_docs_agent(
    sessions: SessionStore,
    docs: Context7Client,
    *,
    dispatcher: ToolDispatcher | None = None,
):
    """Build and compile the docs agent graph.

    Returns a compiled graph; drive it with :func:`run_turn` and
    :func:`resume_turn` rather than invoking it directly.
    """
    dispatcher = dispatcher or build_dispatcher()

    def context_for(session_id: str) -> ToolContext:
        return ToolContext(session_id, sessions.runtime_for(session_id), docs)

    graph = StateGraph(AgentState)

    graph.add_node("chatbot", _make_chatbot_node(dispatcher.registry))
    graph.add_node("tools", _make_tools_node(dispatcher, context_for))
    graph.add_node("approval", _make_approval_node(dispatcher, context_for))

    graph.set_entry_point("chatbot")
    graph.add_conditional_edges("chatbot", should_use_tools, {"tools": "tools", END: END})
    graph.add_conditional_edges(
        "tools", route_after_tools, {"approval": "approval", "chatbot": "chatbot"},
    )
    graph.add_edge("approval", "chatbot")

    compiled = graph.compile(checkpointer=MemorySaver())
    logger.debug(
        "Docs agent compiled - model: %s, tools: %d", MODEL_NAME, len(dispatcher.registry),
    )
    return compiled


# ── Driving the graph ────────────────────────────────────────────────


def _thread_config(session_id: str) -> RunnableConfig:
    return {"configurable": {"thread_id": session_id}}


async def pending_approvals(agent, session_id: str) -> list[dict[str, Any]]:
    """Calls the session is currently waiting on the user for."""
    snapshot = await agent.aget_state(_thread_config(session_id))
    pending: list[dict[str, Any]] = []
    for task in snapshot.tasks:
        for pending_interrupt in task.interrupts:
            value = pending_interrupt.value
            if isinstance(value, dict):
                pending.extend(value.get("pending_approvals", []))
    return pending


async def _turn_result(agent, session_id: str, result: dict) -> TurnResult:
    pending = await pending_approvals(agent, session_id)
    reply = ""
    for message in reversed(result.get("messages", [])):
        if isinstance(message, AIMessage):
            reply = message_text(message)
            break
    return TurnResult(reply=reply, pending_approvals=pending)


async def _deny_stale_approvals(agent, session_id: str) -> None:
    """Answer calls still waiting for approval as denied.

    A new user message replaces the pending decision, and every tool call in
    the history must carry a result before the model sees it again.
    """
    stale = await pending_approvals(agent, session_id)
    if not stale:
        return
    logger.info(
        "Session %s: new message while %d call(s) await approval, denying them",
        session_id, len(stale),
    )
    await agent.aupdate_state(
        _thread_config(session_id),
        {"messages": [_denial(call) for call in stale], "pending_approvals": []},
        as_node="approval",
    )


async def run_turn(agent, session_id: str, message: str) -> TurnResult:
    """Send a user message and run until the agent answers or needs approval.

    Calls left pending from the previous turn are denied first.
    """
    await _deny_stale_approvals(agent, session_id)
    result = await agent.ainvoke(
        {"messages": [HumanMessage(content=message)]},
        config=_thread_config(session_id),
    )
    return await _turn_result(agent, session_id, result)


async def resume_turn(agent, session_id: str, decisions: Mapping[str, bool]) -> TurnResult:
    """Resume a paused session with the user's approve/deny decisions.

    Raises:
        NoPendingApprovalError: If the session is not waiting for approval.
    """
    if not await pending_approvals(agent, session_id):
        raise NoPendingApprovalError(f"Session {session_id} has no pending approvals")
    result = await agent.ainvoke(
        Command(resume=dict(decisions)),
        config=_thread_config(session_id),
    )
    return await _turn_result(agent, session_id, result)
