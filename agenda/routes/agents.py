from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from agenda.routes.deps import get_dispatcher, get_gateway, get_sessions
from agenda.services.agent_registry import AGENTS
from agenda.services.agent_runtime import WorkReportStatus, run_turn, run_work_report
from agenda.services.dispatcher import ActionDispatcher
from agenda.services.gateway import AgentGateway
from agenda.services.models import AgentRole
from agenda.services.session_manager import SessionManager

router = APIRouter(prefix="/api/agents", tags=["agents"])


class ChatRequest(BaseModel):
    message: str
    conversation_id: Optional[str] = None


class WorkReportRequest(BaseModel):
    description: str
    hours: float = Field(gt=0)


@router.get("")
async def list_agents() -> list[dict[str, Any]]:
    return [
        {
            "role": agent.role.value,
            "label": agent.label,
            "focus": agent.focus,
            "tools": list(agent.tools),
        }
        for agent in AGENTS
    ]


@router.post("/operational/report")
async def report_work(
    body: WorkReportRequest,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
    gateway: AgentGateway = Depends(get_gateway),
    sessions: SessionManager = Depends(get_sessions),
) -> dict[str, Any]:
    description = body.description.strip()
    if not description:
        raise HTTPException(status_code=400, detail="description must not be empty")

    result = await run_work_report(
        dispatcher=dispatcher,
        gateway=gateway,
        sessions=sessions,
        description=description,
        hours=body.hours,
    )
    if result.status == WorkReportStatus.FAILED:
        raise HTTPException(status_code=502, detail={"message": result.summary})
    return result.to_dict()


@router.post("/{role}/chat")
async def chat(
    role: AgentRole,
    body: ChatRequest,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
    gateway: AgentGateway = Depends(get_gateway),
    sessions: SessionManager = Depends(get_sessions),
) -> dict[str, Any]:
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="message must not be empty")

    conversation = await sessions.get_or_create_conversation(body.conversation_id, role)
    result = await run_turn(
        dispatcher=dispatcher,
        gateway=gateway,
        sessions=sessions,
        conversation=conversation,
        utterance=message,
        role=role,
    )
    if result.failed:
        raise HTTPException(
            status_code=502,
            detail={"message": result.reply, "conversation_id": result.conversation_id},
        )
    return result.to_dict()
