"""Tests for the bounded tool-calling loop."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chatbridge.llm.client import BackendReply, ToolCall
from chatbridge.llm.errors import BackendError
from chatbridge.llm.tool_loop import run_tool_loop
from chatbridge.tools.base import ToolParams, ToolResult
from chatbridge.tools.registry import ToolRegistry


class _QueryParams(ToolParams):
    query: str


def _tool_reply(call_id: str = "t1", *, text: str = "", extra_calls: int = 0) -> BackendReply:
    call = ToolCall(id=call_id, name="lookup", input={"query": call_id})
    content = []
    if text:
        content.append({"type": "text", "text": text})
    content.append({"type": "tool_use", "id": call_id, "name": "lookup", "input": call.input})
    calls = [call] + [
        ToolCall(id=f"{call_id}-{i}", name="lookup", input={"query": "ignored"})
        for i in range(extra_calls)
    ]
    return BackendReply(text=text, tool_calls=calls, content=content)


def _text_reply(text: str) -> BackendReply:
    return BackendReply(text=text, content=[{"type": "text", "text": text}])


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def registry(calls: list[str]) -> ToolRegistry:
    reg = ToolRegistry()

    @reg.tool(name="lookup", description="Look up", params_model=_QueryParams)
    async def lookup(query: str) -> ToolResult:
        calls.append(query)
        return ToolResult(data={"answer": query.upper()})

    return reg


def _handle(*replies: BackendReply | Exception) -> MagicMock:
    handle = MagicMock()
    handle.label = "key1/test"
    handle.send = AsyncMock(side_effect=list(replies))
    return handle


async def test_plain_reply_needs_no_rounds(registry: ToolRegistry) -> None:
    handle = _handle()
    outcome = await run_tool_loop(handle, [], _text_reply("done"), executor=registry)

    assert outcome.text == "done"
    assert outcome.rounds == 0
    assert not outcome.exhausted
    handle.send.assert_not_called()


async def test_single_round_then_answer(registry: ToolRegistry, calls: list[str]) -> None:
    handle = _handle(_text_reply("The answer is T1."))
    messages = [{"role": "user", "content": "what?"}]

    outcome = await run_tool_loop(handle, messages, _tool_reply("t1"), executor=registry)

    assert outcome.text == "The answer is T1."
    assert outcome.rounds == 1
    assert calls == ["t1"]

    sent = handle.send.call_args.args[0]
    assert sent[0] == {"role": "user", "content": "what?"}
    assert sent[1]["role"] == "assistant"
    assert sent[1]["content"][-1]["type"] == "tool_use"
    result_block = sent[2]["content"][0]
    assert result_block["type"] == "tool_result"
    assert result_block["tool_use_id"] == "t1"
    assert result_block["is_error"] is False
    assert "T1" in result_block["content"]


async def test_caller_messages_are_not_mutated(registry: ToolRegistry) -> None:
    handle = _handle(_text_reply("ok"))
    messages = [{"role": "user", "content": "q"}]
    await run_tool_loop(handle, messages, _tool_reply(), executor=registry)
    assert messages == [{"role": "user", "content": "q"}]


async def test_never_more_than_max_rounds(registry: ToolRegistry, calls: list[str]) -> None:
    """A model that keeps asking for tools stops after three executions."""
    handle = _handle(
        _tool_reply("t2"),
        _tool_reply("t3"),
        _tool_reply("t4", text="partial"),
    )

    outcome = await run_tool_loop(handle, [], _tool_reply("t1"), executor=registry, max_rounds=3)

    assert calls == ["t1", "t2", "t3"]
    assert outcome.rounds == 3
    assert outcome.exhausted
    assert outcome.text == "partial"
    assert handle.send.await_count == 3


async def test_exhausted_without_text_returns_empty(registry: ToolRegistry) -> None:
    handle = _handle(_tool_reply("t2"))
    outcome = await run_tool_loop(handle, [], _tool_reply("t1"), executor=registry, max_rounds=1)
    assert outcome.text == ""
    assert outcome.exhausted


async def test_only_first_tool_request_is_executed(
    registry: ToolRegistry, calls: list[str]
) -> None:
    handle = _handle(_text_reply("done"))
    await run_tool_loop(handle, [], _tool_reply("t1", extra_calls=2), executor=registry)
    assert calls == ["t1"]


async def test_tool_failure_is_reported_to_model() -> None:
    reg = ToolRegistry()

    @reg.tool(name="lookup", description="Look up")
    async def lookup(query: str) -> ToolResult:
        raise RuntimeError("network down")

    handle = _handle(_text_reply("Sorry, the lookup failed."))
    outcome = await run_tool_loop(handle, [], _tool_reply(), executor=reg)

    assert outcome.text == "Sorry, the lookup failed."
    result_block = handle.send.call_args.args[0][-1]["content"][0]
    assert result_block["is_error"] is True
    assert "failed" in result_block["content"]


async def test_backend_error_propagates(registry: ToolRegistry) -> None:
    handle = _handle(BackendError("rate limited", retryable=True, status_code=429))
    with pytest.raises(BackendError):
        await run_tool_loop(handle, [], _tool_reply(), executor=registry)


async def test_system_and_tools_forwarded(registry: ToolRegistry) -> None:
    handle = _handle(_text_reply("ok"))
    schemas = registry.get_schemas()
    await run_tool_loop(
        handle, [], _tool_reply(), executor=registry, system="sys", tools=schemas
    )
    kwargs = handle.send.call_args.kwargs
    assert kwargs["system"] == "sys"
    assert kwargs["tools"] == schemas
