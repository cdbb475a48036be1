from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from agenda.services.config import get_settings


class LLMTransientError(RuntimeError):
    pass


@dataclass
class ToolCall:
    name: str
    arguments: str


@dataclass
class LLMResponse:
    """LLM response with tool calls and real token usage from OpenRouter."""
    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def llm_enabled() -> bool:
    settings = get_settings()
    return bool(settings.use_real_llm and settings.openrouter_api_key)


def _extract_text_from_message(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
        return "\n".join(parts).strip()
    return str(content)


def _extract_tool_calls(message: dict[str, Any]) -> list[ToolCall]:
    raw_calls = message.get("tool_calls") or []
    if not isinstance(raw_calls, list):
        raise RuntimeError("OpenRouter tool_calls is not a list")
    calls: list[ToolCall] = []
    for item in raw_calls:
        function = item.get("function") if isinstance(item, dict) else None
        if not isinstance(function, dict) or not function.get("name"):
            raise RuntimeError("OpenRouter tool call is missing a function name")
        arguments = function.get("arguments") or "{}"
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        calls.append(ToolCall(name=str(function["name"]), arguments=arguments))
    return calls


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError, LLMTransientError)),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    reraise=True,
)
async def _chat_completion_request(payload: dict[str, Any]) -> dict[str, Any]:
    settings = get_settings()
    if not settings.openrouter_api_key:
        raise RuntimeError("OPENROUTER_API_KEY is not configured")

    url = settings.openrouter_base_url.rstrip("/") + "/chat/completions"
    headers = {
        "Authorization": f"Bearer {settings.openrouter_api_key}",
        "Content-Type": "application/json",
    }

    timeout = httpx.Timeout(settings.llm_timeout_seconds)
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, headers=headers, json=payload)

    if response.status_code >= 500 or response.status_code in {408, 409, 425, 429}:
        raise LLMTransientError(f"OpenRouter temporary error: {response.status_code}")

    if response.status_code >= 400:
        detail = response.text[:300]
        raise RuntimeError(f"OpenRouter request failed ({response.status_code}): {detail}")

    try:
        data = response.json()
    except ValueError as exc:
        raise RuntimeError(f"OpenRouter returned a non-JSON body: {response.text[:120]!r}") from exc
    if not isinstance(data, dict):
        raise RuntimeError("OpenRouter response body is not a JSON object")
    return data


async def llm_chat_with_tools(
    messages: list[dict[str, str]],
    tools: Optional[list[dict[str, Any]]] = None,
    temperature: float = 0.7,
    max_tokens: int = 800,
    model: Optional[str] = None,
) -> LLMResponse:
    """Call OpenRouter and return text, tool calls and real token usage."""
    settings = get_settings()
    if not llm_enabled():
        raise RuntimeError("Real LLM mode is not enabled")

    payload: dict[str, Any] = {
        "model": model or settings.openrouter_model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = "auto"

    data = await _chat_completion_request(payload)
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise RuntimeError("OpenRouter response did not contain choices")

    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        raise RuntimeError("OpenRouter choice did not contain a message")
    text = _extract_text_from_message(message.get("content")).strip()
    tool_calls = _extract_tool_calls(message)
    if not text and not tool_calls:
        raise RuntimeError("OpenRouter response contained neither text nor tool calls")

    usage = data.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    return LLMResponse(
        text=text,
        tool_calls=tool_calls,
        prompt_tokens=usage.get("prompt_tokens") or 0,
        completion_tokens=usage.get("completion_tokens") or 0,
        total_tokens=usage.get("total_tokens") or 0,
    )


def try_parse_json_object(text: str) -> Optional[dict[str, Any]]:
    text = text.strip()
    if not text:
        return None

    try:
        value = json.loads(text)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    snippet = text[start : end + 1]
    try:
        value = json.loads(snippet)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        return None

    return None
