"""FastAPI route definitions for the docs agent API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from src.agent import NoPendingApprovalError, TurnResult, resume_turn, run_turn
from src.api.schemas import (
    ApprovalRequest,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    PendingApproval,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_agent(request: Request):
    """Retrieve the compiled LangGraph agent from app state.

    The agent is initialised once during the FastAPI lifespan (see
    ``server.py``).
    """
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


def _to_response(result: TurnResult, session_id: str) -> ChatResponse:
    return ChatResponse(
        reply=result.reply,
        session_id=session_id,
        pending_approvals=[PendingApproval(**p) for p in result.pending_approvals],
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the docs agent.

    The session_id keeps conversation context and scheduled tasks across
    requests.  When the model asks for a tool that needs the user's
    approval, the reply lists it under ``pending_approvals`` and the
    session waits for ``POST /chat/approvals``.
    """
    agent = _get_agent(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await run_turn(agent, request.session_id, request.message)
    except Exception as e:
        # Full traceback stays in the server log only
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return _to_response(result, request.session_id)


@router.post("/chat/approvals", response_model=ChatResponse)
async def approve(request: ApprovalRequest, http_request: Request):
    """Approve or deny the session's pending tool calls and continue the turn."""
    agent = _get_agent(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    decisions = {d.tool_call_id: d.approved for d in request.decisions}

    try:
        result = await resume_turn(agent, request.session_id, decisions)
    except NoPendingApprovalError as e:
        raise HTTPException(
            status_code=409,
            detail="This session has no tool calls waiting for approval.",
        ) from e
    except Exception as e:
        logger.exception("[%s] Error processing approval request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return _to_response(result, request.session_id)
