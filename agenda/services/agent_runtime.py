from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from agenda.services.actions import LOG_WORK_DONE
from agenda.services.agent_registry import work_report_prompt
from agenda.services.context import build_context_snapshot
from agenda.services.dispatcher import ActionDispatcher, ActionOutcome
from agenda.services.errors import GatewayError
from agenda.services.gateway import AgentGateway
from agenda.services.models import AgentRole
from agenda.services.rules import WALK_IN_CLIENT
from agenda.services.session_manager import ConversationContext, SessionManager

logger = logging.getLogger(__name__)

GENERIC_FAILURE_REPLY = (
    "Sorry, something went wrong while processing your request, or the API key is not configured."
)
EMPTY_TURN_REPLY = "Done."
REPORT_NOT_PROCESSED_REPLY = "The agent could not process this report automatically. Try being more specific."


@dataclass
class TurnResult:
    conversation_id: str
    role: AgentRole
    reply: str
    outcomes: list[ActionOutcome] = field(default_factory=list)
    free_text: Optional[str] = None
    failed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "role": self.role.value,
            "reply": self.reply,
            "free_text": self.free_text,
            "failed": self.failed,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def compose_reply(outcomes: list[ActionOutcome], free_text: Optional[str]) -> str:
    lines: list[str] = []
    for outcome in outcomes:
        if not outcome.recognized:
            continue
        if outcome.error is not None:
            lines.append(f"Could not run {outcome.action}: {'; '.join(outcome.error.errors)}.")
            continue
        lines.append(outcome.summary)
        if outcome.ambiguous_client_ids:
            lines.append(
                f"Note: the client name matched {len(outcome.ambiguous_client_ids)} clients; "
                "the first one was used."
            )
        if not outcome.persisted:
            lines.append("Warning: this change is not saved yet; it will be written on the next successful save.")
    if free_text:
        if lines:
            lines.append("")
        lines.append(free_text.strip())
    return "\n".join(lines) or EMPTY_TURN_REPLY


async def run_turn(
    *,
    dispatcher: ActionDispatcher,
    gateway: AgentGateway,
    sessions: SessionManager,
    conversation: ConversationContext,
    utterance: str,
    role: Optional[AgentRole] = None,
) -> TurnResult:
    """Run one turn: ask the gateway, then apply its proposed actions in order.

    Actions only run once the gateway has returned a complete proposal, so a
    failed or cancelled call leaves the ledger untouched.
    """
    role = role or conversation.role
    async with sessions.turn_lock:
        context = build_context_snapshot(dispatcher.store)
        history = list(conversation.messages)
        try:
            proposal = await gateway.propose(role, utterance, context, history)
        except GatewayError as exc:
            logger.error("Turn failed for %s in %s: %s", role.value, conversation.conversation_id, exc)
            conversation.append_message("user", utterance)
            conversation.append_message("assistant", GENERIC_FAILURE_REPLY)
            return TurnResult(
                conversation_id=conversation.conversation_id,
                role=role,
                reply=GENERIC_FAILURE_REPLY,
                failed=True,
            )

        outcomes = await dispatcher.apply_actions(
            ((action.name, action.args) for action in proposal.actions), role
        )

    reply = compose_reply(outcomes, proposal.free_text)
    conversation.append_message("user", utterance)
    conversation.append_message("assistant", reply)
    logger.info(
        "Turn for %s applied %d of %d proposed action(s)",
        role.value, sum(1 for outcome in outcomes if outcome.ok), len(outcomes),
    )
    return TurnResult(
        conversation_id=conversation.conversation_id,
        role=role,
        reply=reply,
        outcomes=outcomes,
        free_text=proposal.free_text,
    )


class WorkReportStatus(str, Enum):
    RECORDED = "recorded"
    NOT_PROCESSED = "not_processed"
    FAILED = "failed"


@dataclass
class WorkReportResult:
    status: WorkReportStatus
    summary: str
    cost: float = 0
    outcome: Optional[ActionOutcome] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "summary": self.summary,
            "cost": self.cost,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


def _work_report_args(args: dict[str, Any], description: str, hours: float) -> dict[str, Any]:
    args = dict(args)
    client_name = args.get("clientName")
    if not isinstance(client_name, str) or not client_name.strip():
        args["clientName"] = WALK_IN_CLIENT
    if not args.get("details"):
        args["details"] = description
    if args.get("hours") in (None, ""):
        args["hours"] = hours
    return args


async def run_work_report(
    *,
    dispatcher: ActionDispatcher,
    gateway: AgentGateway,
    sessions: SessionManager,
    description: str,
    hours: float,
) -> WorkReportResult:
    """File a finished job through the operational agent.

    Only the first logWorkDone the agent proposes is applied; anything else in
    the proposal is ignored. No logWorkDone means nothing is written.
    """
    role = AgentRole.OPERATIONAL
    async with sessions.turn_lock:
        context = build_context_snapshot(dispatcher.store)
        try:
            proposal = await gateway.propose(role, work_report_prompt(description, hours), context)
        except GatewayError as exc:
            logger.error("Work report failed at the gateway: %s", exc)
            return WorkReportResult(WorkReportStatus.FAILED, GENERIC_FAILURE_REPLY)

        action = next((item for item in proposal.actions if item.name == LOG_WORK_DONE), None)
        if action is None:
            logger.info("Work report produced no %s call (%d other action(s))", LOG_WORK_DONE, len(proposal.actions))
            return WorkReportResult(WorkReportStatus.NOT_PROCESSED, REPORT_NOT_PROCESSED_REPLY)

        args = _work_report_args(action.args, description, hours)
        (outcome,) = await dispatcher.apply_actions([(LOG_WORK_DONE, args)], role)

    if not outcome.ok:
        return WorkReportResult(
            WorkReportStatus.NOT_PROCESSED,
            f"{REPORT_NOT_PROCESSED_REPLY} ({'; '.join(outcome.error.errors)})",
            outcome=outcome,
        )
    return WorkReportResult(
        WorkReportStatus.RECORDED,
        f'Report "{args.get("summary")}" for {args["clientName"]} processed.',
        cost=outcome.cost or 0,
        outcome=outcome,
    )
