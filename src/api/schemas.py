"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=8000, description="The user's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique session identifier for conversation continuity",
    )


class PendingApproval(BaseModel):
    """A tool call the agent is waiting for the user to approve or deny."""

    tool_call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ApprovalDecision(BaseModel):
    tool_call_id: str = Field(..., min_length=1)
    approved: bool


class ApprovalRequest(BaseModel):
    """The user's decisions for the session's pending tool calls.

    Pending calls without a decision are treated as denied.
    """

    session_id: str = Field(..., min_length=1, max_length=100)
    decisions: list[ApprovalDecision] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Response from the agent."""

    reply: str = Field(..., description="The agent's response message")
    session_id: str = Field(..., description="The session ID for this conversation")
    pending_approvals: list[PendingApproval] = Field(
        default_factory=list,
        description="Tool calls awaiting the user's decision; empty when the turn is complete",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "docs-agent"
