"""Docs Agent - a chat assistant for library documentation questions.

Architecture Overview
=====================

The agent is a **LangGraph** state machine around Claude:

1. **chatbot** - Invokes Claude with the conversation history and every
   registered tool bound. The LLM decides whether to respond or call tools.

2. **tools** - Runs tool calls that execute automatically (local time,
   task scheduling) and holds back the ones that need the user's approval
   (weather, Context7 documentation search and fetch).

3. **approval** - Pauses the run until the user approves or denies each
   held call, then executes the approved ones.

Routing: chatbot → tools → (approval →) chatbot, until no tool calls → END

Key Design Decisions
--------------------
- **Confirmation gate**: a tool's definition says explicitly whether it is
  ``AutoExecuting`` or ``ConfirmationRequired``. Confirmation-required tools
  run from a separate executions table, and only with ``approved=True``.
- **Injected context**: every tool function receives a ``ToolContext`` with
  the session runtime and Context7 client; nothing reads global state.
- **Failures as text**: tools report upstream and scheduling failures as
  strings so the conversation always continues.
- **Memory**: LangGraph's MemorySaver keeps per-session history.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``src/agent.py`` - LangGraph StateGraph and turn helpers
- ``src/config.py`` - Centralized configuration from environment variables
- ``src/prompts.py`` - System prompt
- ``src/server.py`` - FastAPI application
- ``src/main.py`` - CLI chat interface
- ``src/services/`` - Context7 API client and session runtime
- ``src/tools/`` - Tool registry, dispatcher and tool implementations
- ``src/api/`` - FastAPI routes and Pydantic schemas
"""
