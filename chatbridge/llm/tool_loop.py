"""Bounded tool-calling loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from chatbridge.llm.client import BackendReply, ModelHandle
    from chatbridge.tools.base import ToolResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 3


class ToolExecutor(Protocol):
    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolResult: ...


class LoopState(Enum):
    AWAITING_BACKEND = "awaiting_backend"
    AWAITING_TOOL = "awaiting_tool"
    DONE = "done"


@dataclass
class ToolLoopOutcome:
    text: str
    rounds: int
    exhausted: bool  # stopped at the round limit with a tool still pending


async def run_tool_loop(
    handle: ModelHandle,
    messages: list[dict[str, Any]],
    first_reply: BackendReply,
    *,
    executor: ToolExecutor,
    system: str | list[dict[str, Any]] | None = None,
    tools: list[dict[str, Any]] | None = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
) -> ToolLoopOutcome:
    """Service tool requests until the model answers or the round limit hits.

    Only the first tool request of each reply is executed. Hitting
    ``max_rounds`` with a request still pending is not an error: whatever
    text came with the last reply (possibly empty) is returned.

    Backend failures propagate as BackendError so the caller can fail over.
    """
    loop_messages = list(messages)
    reply = first_reply
    rounds = 0
    state = LoopState.AWAITING_TOOL if reply.wants_tool else LoopState.DONE

    while state is not LoopState.DONE:
        if state is LoopState.AWAITING_TOOL:
            if rounds >= max_rounds:
                logger.warning(
                    "Hit max tool rounds (%d) with '%s' still pending",
                    max_rounds,
                    reply.tool_calls[0].name,
                )
                break

            call = reply.tool_calls[0]
            rounds += 1
            logger.info("Round %d: tool call %s", rounds, call.name)
            result = await executor.execute(call.name, call.input)

            loop_messages.append({"role": "assistant", "content": reply.content})
            loop_messages.append({
                "role": "user",
                "content": [{
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": result.to_content(),
                    "is_error": not result.success,
                }],
            })
            state = LoopState.AWAITING_BACKEND

        elif state is LoopState.AWAITING_BACKEND:
            reply = await handle.send(loop_messages, system=system, tools=tools)
            state = LoopState.AWAITING_TOOL if reply.wants_tool else LoopState.DONE

    return ToolLoopOutcome(text=reply.text, rounds=rounds, exhausted=reply.wants_tool)
