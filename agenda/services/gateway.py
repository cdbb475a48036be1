from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

import httpx

from agenda.services.actions import ACTION_TOOLS
from agenda.services.agent_registry import system_instruction
from agenda.services.config import get_settings
from agenda.services.errors import GatewayError
from agenda.services.llm import llm_chat_with_tools, llm_enabled, try_parse_json_object
from agenda.services.models import AgentRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposedAction:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentProposal:
    actions: list[ProposedAction] = field(default_factory=list)
    free_text: Optional[str] = None


class AgentGateway(Protocol):
    """One request, one complete response; no state shared with the ledger."""

    async def propose(
        self,
        role: AgentRole,
        utterance: str,
        context: str,
        history: Sequence[dict[str, str]] = (),
    ) -> AgentProposal:
        ...


class OpenRouterGateway:
    def __init__(self, hourly_rate: Optional[float] = None, tools: Optional[list[dict[str, Any]]] = None) -> None:
        settings = get_settings()
        self.hourly_rate = hourly_rate if hourly_rate is not None else settings.hourly_rate
        self.temperature = settings.llm_temperature
        self.tools = tools if tools is not None else ACTION_TOOLS

    async def propose(
        self,
        role: AgentRole,
        utterance: str,
        context: str,
        history: Sequence[dict[str, str]] = (),
    ) -> AgentProposal:
        if not llm_enabled():
            raise GatewayError("Agent gateway requires USE_REAL_LLM=true and OPENROUTER_API_KEY configured.")

        messages = [{"role": "system", "content": f"{system_instruction(role, self.hourly_rate)}\n{context}"}]
        messages.extend(history)
        messages.append({"role": "user", "content": utterance})

        try:
            response = await llm_chat_with_tools(messages, tools=self.tools, temperature=self.temperature)
        except httpx.HTTPError as exc:
            logger.error("Agent gateway transport failure for %s: %s", role.value, exc)
            raise GatewayError(f"Agent gateway transport failure: {exc}") from exc
        except (RuntimeError, ValueError) as exc:
            logger.error("Agent gateway call failed for %s: %s", role.value, exc)
            raise GatewayError(str(exc)) from exc

        actions: list[ProposedAction] = []
        for call in response.tool_calls:
            args = try_parse_json_object(call.arguments)
            if args is None:
                raise GatewayError(f"Agent gateway returned malformed arguments for {call.name}")
            actions.append(ProposedAction(name=call.name, args=args))

        logger.info(
            "Gateway proposal for %s: %d action(s), %d prompt / %d completion tokens",
            role.value, len(actions), response.prompt_tokens, response.completion_tokens,
        )
        return AgentProposal(actions=actions, free_text=response.text or None)
