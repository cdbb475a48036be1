from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

import agenda.services.llm as llm_module
from agenda.main import create_app
from agenda.services.config import Settings
from agenda.services.errors import GatewayError
from agenda.services.gateway import AgentProposal, OpenRouterGateway, ProposedAction


class FixedGateway:
    def __init__(self, result) -> None:
        self.result = result

    async def propose(self, role, utterance, context, history=()):  # noqa: ARG002
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _client(tmp_path, gateway=None) -> TestClient:
    settings = Settings(database_path=str(tmp_path / "agenda.db"), hourly_rate=5000)
    return TestClient(create_app(settings, gateway=gateway or FixedGateway(AgentProposal())))


def test_health(tmp_path) -> None:
    with _client(tmp_path) as client:
        response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_direct_actions_and_validation(tmp_path) -> None:
    with _client(tmp_path) as client:
        created = client.post("/api/actions/addClient", json={"args": {"name": "Ana"}})
        rejected = client.post("/api/actions/addClient", json={"args": {}})
        ignored = client.post("/api/actions/sendFax", json={"args": {"to": "Ana"}})
        clients = client.get("/api/clients").json()
        logs = client.get("/api/logs").json()

    assert created.status_code == 200
    assert created.json()["ok"] is True
    assert rejected.status_code == 422
    assert rejected.json()["detail"]["errors"] == ["name is required"]
    assert ignored.status_code == 200
    assert ignored.json()["recognized"] is False
    assert [row["name"] for row in clients] == ["Ana"]
    assert [row["action"] for row in logs] == ["CREATE_CLIENT"]


def test_ticket_status_flow_issues_invoice(tmp_path) -> None:
    with _client(tmp_path) as client:
        client_id = client.post("/api/actions/addClient", json={"args": {"name": "Ana"}}).json()["created_ids"]["client_id"]
        ticket_id = client.post(
            "/api/actions/createTicket",
            json={"args": {"title": "Setup", "scheduledDate": "2026-02-20", "estimatedHours": 2, "clientId": client_id}},
        ).json()["created_ids"]["ticket_id"]

        skipped = client.post(f"/api/tickets/{ticket_id}/status", json={"status": "Completed"})
        started = client.post(f"/api/tickets/{ticket_id}/status", json={"status": "InProgress"})
        done = client.post(f"/api/tickets/{ticket_id}/status", json={"status": "Completed", "actual_hours": 3})
        missing = client.post("/api/tickets/nope/status", json={"status": "Cancelled"})
        invoices = client.get("/api/invoices").json()
        ticket = client.get(f"/api/tickets/{ticket_id}").json()

    assert skipped.status_code == 409
    assert started.status_code == 200
    assert done.status_code == 200
    assert done.json()["invoice"]["amount"] == 15000
    assert missing.status_code == 404
    assert len(invoices) == 1
    assert invoices[0]["client_name"] == "Ana"
    assert invoices[0]["ticket_title"] == "Setup"
    assert ticket["status"] == "Completed"
    assert len(ticket["invoices"]) == 1


def test_chat_turn_and_persistence(tmp_path) -> None:
    gateway = FixedGateway(
        AgentProposal(
            actions=[ProposedAction("logWorkDone", {"clientName": "Ana", "summary": "Format PC", "hours": 3})],
            free_text="Logged.",
        )
    )
    with _client(tmp_path, gateway) as client:
        response = client.post("/api/agents/operational/chat", json={"message": "Formatted Ana's PC, 3h"})
        dashboard = client.get("/api/dashboard").json()

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "operational"
    assert body["outcomes"][0]["cost"] == 15000
    assert body["conversation_id"]
    assert dashboard["stats"]["receivables"] == 15000

    with _client(tmp_path) as client:
        tickets = client.get("/api/tickets", params={"status": "Completed"}).json()
        invoices = client.get("/api/invoices").json()
    assert [ticket["title"] for ticket in tickets] == ["Format PC"]
    assert invoices[0]["amount"] == 15000


def test_chat_gateway_failure_is_generic(tmp_path) -> None:
    with _client(tmp_path, FixedGateway(GatewayError("401 unauthorized"))) as client:
        response = client.post("/api/agents/admin/chat", json={"message": "add Ana"})
        clients = client.get("/api/clients").json()

    assert response.status_code == 502
    assert "401" not in response.json()["detail"]["message"]
    assert clients == []


def test_unknown_role_and_agent_listing(tmp_path) -> None:
    with _client(tmp_path) as client:
        agents = client.get("/api/agents").json()
        unknown = client.post("/api/agents/janitor/chat", json={"message": "hi"})

    assert [agent["role"] for agent in agents] == ["supervisor", "admin", "operational", "financial", "analyst"]
    assert unknown.status_code == 422


def test_chat_with_garbled_openrouter_body_is_502(tmp_path, monkeypatch) -> None:
    llm_settings = Settings(use_real_llm=True, openrouter_api_key="test-key")

    async def fake_post(self, url, headers=None, json=None):  # noqa: ARG001
        return httpx.Response(200, content=b"<html>oops</html>", request=httpx.Request("POST", url))

    monkeypatch.setattr(llm_module, "get_settings", lambda: llm_settings)
    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    with _client(tmp_path, OpenRouterGateway(hourly_rate=5000)) as client:
        response = client.post("/api/agents/admin/chat", json={"message": "add Ana"})
        clients = client.get("/api/clients").json()

    assert response.status_code == 502
    assert clients == []


def test_operational_report_endpoint(tmp_path) -> None:
    gateway = FixedGateway(
        AgentProposal(actions=[ProposedAction("logWorkDone", {"clientName": "Ana", "summary": "Format PC", "hours": 3})])
    )
    with _client(tmp_path, gateway) as client:
        recorded = client.post("/api/agents/operational/report", json={"description": "Formatted Ana's PC", "hours": 3})
        invalid = client.post("/api/agents/operational/report", json={"description": "x", "hours": 0})
        invoices = client.get("/api/invoices").json()

    assert recorded.status_code == 200
    assert recorded.json()["status"] == "recorded"
    assert recorded.json()["cost"] == 15000
    assert invalid.status_code == 422
    assert [row["amount"] for row in invoices] == [15000]


def test_operational_report_without_tool_call_and_failure(tmp_path) -> None:
    with _client(tmp_path, FixedGateway(AgentProposal(free_text="Which client?"))) as client:
        skipped = client.post("/api/agents/operational/report", json={"description": "stuff", "hours": 1})
        tickets = client.get("/api/tickets").json()

    assert skipped.status_code == 200
    assert skipped.json()["status"] == "not_processed"
    assert skipped.json()["cost"] == 0
    assert tickets == []

    with _client(tmp_path, FixedGateway(GatewayError("502 upstream"))) as client:
        failed = client.post("/api/agents/operational/report", json={"description": "stuff", "hours": 1})

    assert failed.status_code == 502
    assert "upstream" not in failed.json()["detail"]["message"]
