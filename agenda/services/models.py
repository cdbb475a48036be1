from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class TicketStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TicketStatus.COMPLETED, TicketStatus.CANCELLED)


class AgentRole(str, Enum):
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    OPERATIONAL = "operational"
    FINANCIAL = "financial"
    ANALYST = "analyst"


@dataclass
class Client:
    id: str
    name: str
    contact: str = "N/A"
    email: str = "N/A"
    notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Client":
        return Client(
            id=data["id"],
            name=data["name"],
            contact=data.get("contact", "N/A"),
            email=data.get("email", "N/A"),
            notes=data.get("notes"),
        )


@dataclass
class Ticket:
    id: str
    client_id: Optional[str]
    title: str
    description: str
    status: TicketStatus
    scheduled_date: str  # YYYY-MM-DD
    estimated_hours: float
    cost: float
    created_at: str
    actual_hours: Optional[float] = None

    @property
    def billable_hours(self) -> float:
        return self.actual_hours if self.actual_hours is not None else self.estimated_hours

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Ticket":
        return Ticket(
            id=data["id"],
            client_id=data.get("client_id"),
            title=data["title"],
            description=data.get("description", ""),
            status=TicketStatus(data["status"]),
            scheduled_date=data["scheduled_date"],
            estimated_hours=data.get("estimated_hours", 0),
            cost=data["cost"],
            created_at=data["created_at"],
            actual_hours=data.get("actual_hours"),
        )


@dataclass
class Invoice:
    id: str
    ticket_id: str
    amount: float
    issue_date: str
    due_date: str
    is_paid: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Invoice":
        return Invoice(
            id=data["id"],
            ticket_id=data["ticket_id"],
            amount=data["amount"],
            issue_date=data["issue_date"],
            due_date=data["due_date"],
            is_paid=bool(data.get("is_paid", False)),
        )


@dataclass
class SystemLog:
    """Append-only audit record; the store keeps these newest first."""
    id: str
    timestamp: str
    agent: AgentRole
    action: str
    details: str

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["agent"] = self.agent.value
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SystemLog":
        return SystemLog(
            id=data["id"],
            timestamp=data["timestamp"],
            agent=AgentRole(data["agent"]),
            action=data["action"],
            details=data.get("details", ""),
        )
