"""Request orchestration: history, credential failover and the tool loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chatbridge.bot.session import Turn
from chatbridge.llm.client import to_api_messages
from chatbridge.llm.errors import AllCredentialsExhausted, BackendError
from chatbridge.llm.prompt import build_system_prompt
from chatbridge.llm.tool_loop import DEFAULT_MAX_ROUNDS, run_tool_loop

if TYPE_CHECKING:
    from collections.abc import Callable

    from chatbridge.bot.session import ConversationStore
    from chatbridge.llm.rotator import CredentialRotator
    from chatbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class RequestOrchestrator:
    """Turns a prompt into a reply for one memory key.

    Owns no state of its own: the conversation store and the rotator are
    injected and shared with every other caller, unlocked.

    Args:
        store: Conversation history per memory key.
        rotator: Credential rotation shared across calls.
        tools: Registry providing tool schemas and execution.
        max_tool_rounds: Tool invocations allowed per generation.
        system_prompt: Builds the system prompt from the offered tool names.
    """

    def __init__(
        self,
        store: ConversationStore,
        rotator: CredentialRotator,
        tools: ToolRegistry,
        *,
        max_tool_rounds: int = DEFAULT_MAX_ROUNDS,
        system_prompt: Callable[[list[str]], Any] = build_system_prompt,
    ) -> None:
        self.store = store
        self.rotator = rotator
        self.tools = tools
        self.max_tool_rounds = max_tool_rounds
        self._system_prompt = system_prompt

    async def generate(self, prompt: str, memory_key: str) -> str:
        """Generate a reply to ``prompt`` in the context stored at ``memory_key``.

        Raises:
            BackendError: A non-retryable failure; rotation stops at once.
            AllCredentialsExhausted: Every credential failed retryably.
        """
        entry = self.store.get_or_create(memory_key)
        prior = list(entry.history)
        self.store.append(memory_key, Turn(role="user", content=prompt))
        self.store.touch(memory_key)

        messages = to_api_messages(prior) + [{"role": "user", "content": prompt}]
        tool_schemas = self.tools.get_schemas()
        system = self._system_prompt(self.tools.tool_names)

        final_text: str | None = None
        last_error: BackendError | None = None
        attempts = 0

        for _ in range(self.rotator.size):
            credential = self.rotator.next()
            attempts += 1
            handle = credential.handle
            try:
                reply = await handle.send(messages, system=system, tools=tool_schemas or None)
                outcome = await run_tool_loop(
                    handle,
                    messages,
                    reply,
                    executor=self.tools,
                    system=system,
                    tools=tool_schemas or None,
                    max_rounds=self.max_tool_rounds,
                )
            except BackendError as exc:
                if not exc.retryable:
                    logger.error(
                        "Non-retryable failure on %s (status=%s); not rotating",
                        credential.label,
                        exc.status_code,
                    )
                    raise
                last_error = exc
                logger.warning(
                    "Credential %s exhausted (status=%s), trying next (%d/%d)",
                    credential.label,
                    exc.status_code,
                    attempts,
                    self.rotator.size,
                )
                continue

            final_text = outcome.text
            if outcome.exhausted:
                logger.warning(
                    "Tool round limit (%d) reached for %s; replying with %d chars of partial text",
                    self.max_tool_rounds,
                    memory_key,
                    len(final_text),
                )
            logger.info(
                "Generated %d chars with %s (attempt %d, %d tool round(s))",
                len(final_text),
                credential.label,
                attempts,
                outcome.rounds,
            )
            break

        if final_text is None:
            logger.error("All %d credential(s) exhausted for %s", attempts, memory_key)
            raise AllCredentialsExhausted(last_error, attempts)

        # The API rejects empty assistant turns, so a blank soft-fail reply
        # is not stored.
        if final_text:
            self.store.append(memory_key, Turn(role="model", content=final_text))
        self.store.touch(memory_key)
        return final_text
