"""Async Claude API adapter: one API key bound to one model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import dropwhile
from typing import TYPE_CHECKING, Any

import anthropic

from chatbridge.llm.errors import BackendError
from chatbridge.llm.models import friendly

if TYPE_CHECKING:
    from collections.abc import Iterable

    from chatbridge.bot.session import Turn

logger = logging.getLogger(__name__)

# 402 billing, 429 rate limit, 5xx transient, 529 overloaded.
RETRYABLE_STATUS_CODES = frozenset({402, 429, 500, 502, 503, 504, 529})
RETRYABLE_ERROR_TYPES = frozenset({"rate_limit_error", "overloaded_error", "billing_error"})

_ROLE_MAP = {"user": "user", "model": "assistant"}


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: dict[str, Any]


@dataclass
class BackendReply:
    """One model response, reduced to what the tool loop needs."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    content: list[dict[str, Any]] = field(default_factory=list)

    @property
    def wants_tool(self) -> bool:
        return bool(self.tool_calls)


def to_api_messages(turns: Iterable[Turn]) -> list[dict[str, Any]]:
    """Format conversation turns for the Claude messages API.

    Leading model turns are dropped: the API requires the first message to
    come from the user, and trimming an odd-length history (a failed or empty
    generation stores no reply) can leave a model turn at the front.
    """
    turns = dropwhile(lambda t: t.role == "model", turns)
    return [{"role": _ROLE_MAP[t.role], "content": t.content} for t in turns]


def _error_type(body: object) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("type", ""))
    return ""


def classify_error(exc: Exception, credential: str = "") -> BackendError:
    """Map an SDK exception to a BackendError with an explicit retryable flag."""
    if isinstance(exc, anthropic.APIStatusError):
        retryable = (
            exc.status_code in RETRYABLE_STATUS_CODES
            or _error_type(exc.body) in RETRYABLE_ERROR_TYPES
        )
        return BackendError(
            str(exc), retryable=retryable, status_code=exc.status_code, credential=credential
        )
    if isinstance(exc, anthropic.APIConnectionError):
        # Also covers APITimeoutError.
        return BackendError(str(exc), retryable=True, credential=credential)
    return BackendError(str(exc), retryable=False, credential=credential)


def _parse_response(response: Any) -> BackendReply:
    """Keep text blocks and only the first tool_use block.

    The loop services one tool per round, so later tool_use blocks are
    dropped from the serialized assistant turn as well; otherwise the API
    would demand results for calls that were never executed.
    """
    text_parts: list[str] = []
    content: list[dict[str, Any]] = []
    tool_calls: list[ToolCall] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)
            content.append({"type": "text", "text": block.text})
        elif block.type == "tool_use" and not tool_calls:
            tool_calls.append(ToolCall(id=block.id, name=block.name, input=dict(block.input)))
            content.append({
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            })
    return BackendReply(text="".join(text_parts), tool_calls=tool_calls, content=content)


class ModelHandle:
    """A ready-to-use model: one API key bound to one Claude model.

    The SDK's own retries are disabled so a rate-limited key fails fast and
    the rotator can move on to the next credential.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        label: str = "",
        max_tokens: int = 2048,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.model = model
        self.label = label or friendly(model)
        self.max_tokens = max_tokens
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def send(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | list[dict[str, Any]] | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> BackendReply:
        """Submit one request. Raises BackendError on any API failure."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise classify_error(exc, credential=self.label) from exc

        reply = _parse_response(response)
        logger.debug(
            "[%s] stop_reason=%s text=%d chars tool=%s",
            self.label,
            getattr(response, "stop_reason", None),
            len(reply.text),
            reply.tool_calls[0].name if reply.tool_calls else None,
        )
        return reply

    def __repr__(self) -> str:
        return f"ModelHandle({self.label!r})"
