from __future__ import annotations

from dataclasses import dataclass

from agenda.services.actions import ADD_CLIENT, CREATE_TICKET, LOG_WORK_DONE
from agenda.services.models import AgentRole
from agenda.services.rules import WALK_IN_CLIENT

BASE_INSTRUCTION = "You are a specialised AI working for a one-technician IT micro-business."


@dataclass(frozen=True)
class AgentMeta:
    role: AgentRole
    label: str
    focus: str
    instruction: str
    tools: tuple[str, ...] = (ADD_CLIENT, CREATE_TICKET, LOG_WORK_DONE)


AGENTS: list[AgentMeta] = [
    AgentMeta(
        AgentRole.SUPERVISOR, "Supervisor (Master)", "General management",
        instruction=(
            "You are the general manager and coordinate the other agents. When the request is generic, "
            "decide the best action. Keep a holistic view of the business."
        ),
    ),
    AgentMeta(
        AgentRole.ADMIN, "Administrative", "Schedule and client records",
        instruction="Your focus is the schedule, client registration and organisation. Be courteous and efficient.",
    ),
    AgentMeta(
        AgentRole.OPERATIONAL, "Operational", "Service reports",
        instruction=(
            "You are the official service record. When the technician says what was done, extract the client, "
            "a summary, the details and the hours. If hours are missing, assume 1h or ask. Call the "
            f"'{LOG_WORK_DONE}' tool IMMEDIATELY to record finished work. Do not stall."
        ),
    ),
    AgentMeta(
        AgentRole.FINANCIAL, "Financial", "Cash flow and invoices",
        instruction=(
            "Your focus is cash flow, costs and invoices. Be analytical and conservative. "
            "Always remember the hourly rate of {hourly_rate:g} Kz."
        ),
    ),
    AgentMeta(
        AgentRole.ANALYST, "Performance Analyst", "Metrics and process improvement",
        instruction="Your focus is metrics and process improvement. Look for patterns and suggest optimisations.",
    ),
]

BY_ROLE = {agent.role: agent for agent in AGENTS}


def system_instruction(role: AgentRole, hourly_rate: float) -> str:
    meta = BY_ROLE.get(role, BY_ROLE[AgentRole.SUPERVISOR])
    return f"{BASE_INSTRUCTION} {meta.instruction.format(hourly_rate=hourly_rate)}"


def work_report_prompt(description: str, hours: float) -> str:
    """Utterance for the operational agent when the technician files a finished job."""
    return (
        "THE TECHNICIAN IS REPORTING A COMPLETED SERVICE.\n"
        f'Technician description: "{description}"\n'
        f"Time spent: {hours:g} hours.\n"
        "\n"
        "Your task:\n"
        f'1. Identify the client name in the text (use "{WALK_IN_CLIENT}" if none is found).\n'
        "2. Summarise the service.\n"
        f"3. Call the '{LOG_WORK_DONE}' function with the correct data."
    )
