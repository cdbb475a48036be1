from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agenda.routes.actions import router as actions_router
from agenda.routes.agents import router as agents_router
from agenda.routes.ledger import router as ledger_router
from agenda.services.config import Settings, get_settings
from agenda.services.dispatcher import ActionDispatcher
from agenda.services.gateway import AgentGateway, OpenRouterGateway
from agenda.services.ledger import LedgerStore
from agenda.services.llm import llm_enabled
from agenda.services.persistence import SnapshotRepository
from agenda.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, gateway: Optional[AgentGateway] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        repository = SnapshotRepository(settings.resolved_database_path)
        store = await LedgerStore.load(
            repository,
            hourly_rate=settings.hourly_rate,
            grace_days=settings.invoice_grace_days,
        )
        app.state.store = store
        app.state.dispatcher = ActionDispatcher(store)
        app.state.sessions = SessionManager()
        app.state.gateway = gateway or OpenRouterGateway(hourly_rate=settings.hourly_rate)
        logger.info("Ledger ready at %s", settings.resolved_database_path)
        try:
            yield
        finally:
            await store.save()

    app = FastAPI(title="Agenda IT Operations API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://127.0.0.1:5173", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ledger_router)
    app.include_router(actions_router)
    app.include_router(agents_router)

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "real_llm_enabled": "true" if llm_enabled() else "false",
        }

    return app


app = create_app()
