"""Tests for the agent graph and its confirmation gate.

Covers:
  - Tool node behaviour (auto execution vs. queuing for approval)
  - Approval resolution (approve / deny / undecided)
  - End-to-end turns through the compiled graph with a mocked LLM
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from src.agent import (
    DENIAL_MESSAGE,
    AgentState,
    NoPendingApprovalError,
    _make_chatbot_node,
    _make_tools_node,
    create_docs_agent,
    message_text,
    resolve_approvals,
    resume_turn,
    route_after_tools,
    run_turn,
    should_use_tools,
)
from src.services.session_runtime import SessionStore
from src.tools.catalog import build_dispatcher, build_registry

# ── Helpers ──────────────────────────────────────────────────────────


def _mock_llm(*responses: AIMessage):
    """Create a mock LLM that returns the given AIMessages in order."""
    mock_llm = MagicMock()
    mock_llm.ainvoke = AsyncMock(side_effect=list(responses))
    return mock_llm


def _tool_call(name: str, args: dict, call_id: str = "call_1") -> dict:
    return {"name": name, "args": args, "id": call_id}


def _config(session_id: str = "s1") -> dict:
    return {"configurable": {"thread_id": session_id}}


# ── TestToolsNode ────────────────────────────────────────────────────


class TestToolsNode:
    @pytest.mark.asyncio
    async def test_auto_tool_executes_and_gated_tool_is_queued(self, tool_context, mock_runtime):
        node = _make_tools_node(build_dispatcher(), lambda sid: tool_context)
        ai_msg = AIMessage(
            content="",
            tool_calls=[
                _tool_call("get_scheduled_tasks", {}, "call_auto"),
                _tool_call("get_weather_information", {"city": "Porto"}, "call_gated"),
            ],
        )

        result = await node({"messages": [ai_msg]}, _config())

        assert [m.tool_call_id for m in result["messages"]] == ["call_auto"]
        assert result["messages"][0].content == "No scheduled tasks found."
        assert result["pending_approvals"] == [
            {"tool_call_id": "call_gated", "tool_name": "get_weather_information",
             "arguments": {"city": "Porto"}},
        ]
        mock_runtime.get_schedules.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_gated_arguments_never_reach_approval(self, tool_context):
        node = _make_tools_node(build_dispatcher(), lambda sid: tool_context)
        ai_msg = AIMessage(content="", tool_calls=[_tool_call("resolve_library_id", {})])

        result = await node({"messages": [ai_msg]}, _config())

        assert result["pending_approvals"] == []
        assert result["messages"][0].status == "error"
        assert "libraryName" in result["messages"][0].content

    @pytest.mark.asyncio
    async def test_unknown_tool_answered_with_error(self, tool_context):
        node = _make_tools_node(build_dispatcher(), lambda sid: tool_context)
        ai_msg = AIMessage(content="", tool_calls=[_tool_call("launch_rockets", {})])

        result = await node({"messages": [ai_msg]}, _config())

        assert "Tool not found" in result["messages"][0].content

    @pytest.mark.asyncio
    async def test_no_schedule_does_not_touch_runtime(self, tool_context, mock_runtime):
        node = _make_tools_node(build_dispatcher(), lambda sid: tool_context)
        ai_msg = AIMessage(
            content="",
            tool_calls=[_tool_call("schedule_task", {"when": {"type": "no-schedule"}, "description": "x"})],
        )

        result = await node({"messages": [ai_msg]}, _config())

        assert result["messages"][0].content == "Not a valid schedule input"
        mock_runtime.schedule.assert_not_called()


# ── TestResolveApprovals ─────────────────────────────────────────────


class TestResolveApprovals:
    @pytest.mark.asyncio
    async def test_approved_call_executes(self, tool_context):
        pending = [{"tool_call_id": "c1", "tool_name": "get_weather_information",
                    "arguments": {"city": "Porto"}}]

        messages = await resolve_approvals(build_dispatcher(), pending, {"c1": True}, tool_context)

        assert messages[0].content == "The weather in Porto is sunny"
        assert messages[0].tool_call_id == "c1"

    @pytest.mark.asyncio
    async def test_denied_call_is_answered_without_running(self, tool_context, mock_docs_client):
        pending = [{"tool_call_id": "c1", "tool_name": "resolve_library_id",
                    "arguments": {"libraryName": "react"}}]

        messages = await resolve_approvals(build_dispatcher(), pending, {"c1": False}, tool_context)

        assert messages[0].content == DENIAL_MESSAGE
        mock_docs_client.search_libraries.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecided_call_counts_as_denied(self, tool_context):
        pending = [{"tool_call_id": "c1", "tool_name": "get_weather_information",
                    "arguments": {"city": "Porto"}}]

        messages = await resolve_approvals(build_dispatcher(), pending, {}, tool_context)

        assert messages[0].content == DENIAL_MESSAGE


# ── TestChatbotNode ──────────────────────────────────────────────────


class TestChatbotNode:
    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_chatbot_node_returns_ai_message(self, mock_build):
        mock_build.return_value = _mock_llm(AIMessage(content="Hi there!"))
        chatbot_node = _make_chatbot_node(build_registry())

        state: AgentState = {"messages": [HumanMessage(content="Hello")], "pending_approvals": []}
        result = await chatbot_node(state)

        assert result["messages"][0].content == "Hi there!"
        sent = mock_build.return_value.ainvoke.call_args.args[0]
        assert sent[0].type == "system"


# ── TestEdges ────────────────────────────────────────────────────────


class TestEdges:
    def test_tool_calls_route_to_tools(self):
        ai_msg = AIMessage(content="", tool_calls=[_tool_call("get_local_time", {"location": "UTC"})])
        assert should_use_tools({"messages": [ai_msg], "pending_approvals": []}) == "tools"

    def test_plain_answer_routes_to_end(self):
        ai_msg = AIMessage(content="All done!")
        assert should_use_tools({"messages": [ai_msg], "pending_approvals": []}) == "__end__"

    def test_pending_routes_to_approval(self):
        state = {"messages": [], "pending_approvals": [{"tool_call_id": "c1"}]}
        assert route_after_tools(state) == "approval"

    def test_nothing_pending_routes_back_to_chatbot(self):
        assert route_after_tools({"messages": [], "pending_approvals": []}) == "chatbot"


class TestMessageText:
    def test_string_content(self):
        assert message_text(AIMessage(content="hello")) == "hello"

    def test_block_content(self):
        msg = AIMessage(content=[
            {"type": "text", "text": "Let me "},
            {"type": "tool_use", "id": "c1", "name": "x", "input": {}},
            {"type": "text", "text": "check."},
        ])
        assert message_text(msg) == "Let me check."


# ── TestGraphTurns ───────────────────────────────────────────────────


class TestGraphTurns:
    """Full turns through the compiled graph with a mocked LLM."""

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_plain_answer(self, mock_build, mock_docs_client):
        mock_build.return_value = _mock_llm(AIMessage(content="Hello!"))
        agent = create_docs_agent(SessionStore(), mock_docs_client)

        result = await run_turn(agent, "s1", "Hi")

        assert result.reply == "Hello!"
        assert not result.awaiting_approval

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_auto_tool_runs_in_same_turn(self, mock_build, mock_docs_client):
        mock_build.return_value = _mock_llm(
            AIMessage(content="", tool_calls=[_tool_call(
                "schedule_task",
                {"when": {"type": "delayed", "delayInSeconds": 30}, "description": "stretch"},
            )]),
            AIMessage(content="Scheduled in 30 seconds."),
        )
        sessions = SessionStore()
        agent = create_docs_agent(sessions, mock_docs_client)

        result = await run_turn(agent, "s1", "Remind me to stretch in 30 seconds")

        assert result.reply == "Scheduled in 30 seconds."
        assert not result.awaiting_approval
        schedules = await sessions.runtime_for("s1").get_schedules()
        assert [s.delay_in_seconds for s in schedules] == [30]

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_gated_tool_waits_then_runs_when_approved(self, mock_build, mock_docs_client):
        llm = _mock_llm(
            AIMessage(content="Let me look that up.", tool_calls=[
                _tool_call("resolve_library_id", {"libraryName": "nextjs"}),
            ]),
            AIMessage(content="Next.js is /vercel/nextjs."),
        )
        mock_build.return_value = llm
        mock_docs_client.search_libraries.return_value = [
            {"id": "/vercel/nextjs", "title": "Next.js", "description": "The React framework"},
        ]
        agent = create_docs_agent(SessionStore(), mock_docs_client)

        first = await run_turn(agent, "s1", "What is the Next.js library id?")

        assert first.awaiting_approval
        assert first.reply == "Let me look that up."
        assert first.pending_approvals[0]["tool_name"] == "resolve_library_id"
        mock_docs_client.search_libraries.assert_not_called()

        second = await resume_turn(agent, "s1", {"call_1": True})

        assert second.reply == "Next.js is /vercel/nextjs."
        assert not second.awaiting_approval
        mock_docs_client.search_libraries.assert_awaited_once_with("nextjs")
        fed_back = [m for m in llm.ainvoke.call_args.args[0] if isinstance(m, ToolMessage)]
        assert fed_back[-1].content.startswith("Available libraries for 'nextjs'")

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_denied_tool_never_runs(self, mock_build, mock_docs_client):
        llm = _mock_llm(
            AIMessage(content="", tool_calls=[
                _tool_call("get_library_docs", {"libraryId": "/vercel/nextjs"}),
            ]),
            AIMessage(content="Okay, I won't fetch the docs."),
        )
        mock_build.return_value = llm
        agent = create_docs_agent(SessionStore(), mock_docs_client)

        await run_turn(agent, "s1", "Show me the Next.js docs")
        result = await resume_turn(agent, "s1", {"call_1": False})

        assert result.reply == "Okay, I won't fetch the docs."
        mock_docs_client.fetch_documentation.assert_not_called()
        fed_back = [m for m in llm.ainvoke.call_args.args[0] if isinstance(m, ToolMessage)]
        assert fed_back[-1].content == DENIAL_MESSAGE

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_new_message_denies_pending_calls(self, mock_build, mock_docs_client):
        llm = _mock_llm(
            AIMessage(content="", tool_calls=[
                _tool_call("get_weather_information", {"city": "Lisbon"}),
            ]),
            AIMessage(content="Hello again!"),
        )
        mock_build.return_value = llm
        agent = create_docs_agent(SessionStore(), mock_docs_client)

        first = await run_turn(agent, "s1", "Weather in Lisbon?")
        assert first.awaiting_approval

        second = await run_turn(agent, "s1", "never mind, hello")

        assert second.reply == "Hello again!"
        assert not second.awaiting_approval
        sent = llm.ainvoke.call_args.args[0]
        requested = {c["id"] for m in sent if isinstance(m, AIMessage) for c in m.tool_calls}
        answered = {m.tool_call_id: m for m in sent if isinstance(m, ToolMessage)}
        assert requested == {"call_1"}
        assert set(answered) == requested
        assert answered["call_1"].content == DENIAL_MESSAGE
        assert isinstance(sent[-1], HumanMessage)
        assert sent[-1].content == "never mind, hello"

        with pytest.raises(NoPendingApprovalError):
            await resume_turn(agent, "s1", {"call_1": True})

    @pytest.mark.asyncio
    @patch("src.agent._build_llm")
    async def test_resume_without_pending_raises(self, mock_build, mock_docs_client):
        mock_build.return_value = _mock_llm(AIMessage(content="Hello!"))
        agent = create_docs_agent(SessionStore(), mock_docs_client)
        await run_turn(agent, "s1", "Hi")

        with pytest.raises(NoPendingApprovalError):
            await resume_turn(agent, "s1", {"call_1": True})
