from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

from agenda.services.models import AgentRole


@dataclass
class ConversationContext:
    conversation_id: str
    role: AgentRole
    messages: list[dict[str, str]] = field(default_factory=list)

    MAX_MESSAGES = 10

    def append_message(self, role: str, content: str) -> None:
        self.messages.append({"role": role, "content": content})
        if len(self.messages) > self.MAX_MESSAGES:
            self.messages = self.messages[-self.MAX_MESSAGES:]


class SessionManager:
    """Conversation registry plus the single-writer lock every turn goes through.

    All chat surfaces in a process share one ledger, so turns from different
    conversations are serialized on ``turn_lock`` rather than interleaved.
    """

    def __init__(self) -> None:
        self._conversations: dict[str, ConversationContext] = {}
        self._lock = asyncio.Lock()
        self.turn_lock = asyncio.Lock()

    async def get_or_create_conversation(
        self, conversation_id: Optional[str], role: AgentRole
    ) -> ConversationContext:
        async with self._lock:
            if conversation_id and conversation_id in self._conversations:
                return self._conversations[conversation_id]
            cid = conversation_id or str(uuid4())
            ctx = ConversationContext(conversation_id=cid, role=role)
            self._conversations[cid] = ctx
            return ctx

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationContext]:
        async with self._lock:
            return self._conversations.get(conversation_id)

    async def clear_all(self) -> None:
        async with self._lock:
            self._conversations.clear()
