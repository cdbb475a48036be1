from __future__ import annotations

from fastapi import Request

from agenda.services.dispatcher import ActionDispatcher
from agenda.services.gateway import AgentGateway
from agenda.services.ledger import LedgerStore
from agenda.services.session_manager import SessionManager


def get_store(request: Request) -> LedgerStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> ActionDispatcher:
    return request.app.state.dispatcher


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_gateway(request: Request) -> AgentGateway:
    return request.app.state.gateway
