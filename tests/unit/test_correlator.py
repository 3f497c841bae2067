import json
import logging
from unittest.mock import AsyncMock

import pytest

from dca_chat.bridge.correlator import PostReply, ResponseWaiter
from dca_chat.bridge.errors import RequestRejected, ResponseTimeout, StreamEnded

PAYLOAD = {"jsonrpc": "2.0", "id": 42, "method": "tools/call", "params": {}}


def _frame(envelope) -> bytes:
    return f"data: {json.dumps(envelope)}\n\n".encode("utf-8")


def _accepting_post():
    return AsyncMock(return_value=PostReply(202, "Accepted"))


@pytest.mark.asyncio
async def test_returns_matching_frame_and_skips_noise(make_stream, caplog):
    match = {"jsonrpc": "2.0", "id": 42, "result": {"content": [{"type": "text", "text": "done"}]}}
    stream, on_close = make_stream(
        b": keep-alive\n\n",
        b"data: /messages?sessionId=s1\n\n",
        b"event: message\n",
        b"data: {broken json\n\n",
        _frame({"jsonrpc": "2.0", "id": 41, "result": {}}),
        _frame(match)[:20],
        _frame(match)[20:],
    )
    post = _accepting_post()
    waiter = ResponseWaiter(post, response_timeout=1)

    with caplog.at_level(logging.WARNING, logger="dca_chat.bridge.correlator"):
        envelope = await waiter.send_and_wait(stream, "s1", 42, PAYLOAD)

    assert envelope == match
    post.assert_awaited_once_with("s1", PAYLOAD)
    on_close.assert_awaited_once()
    assert any("unparseable" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_string_ids_match_numeric_request_id(make_stream):
    stream, _ = make_stream(_frame({"id": "42", "result": {}}))

    envelope = await ResponseWaiter(_accepting_post(), 1).send_and_wait(stream, "s1", 42, PAYLOAD)

    assert envelope["id"] == "42"


@pytest.mark.asyncio
async def test_synchronous_json_body_is_returned_without_reading_stream(make_stream):
    stream, on_close = make_stream(hang=True)
    body = json.dumps({"jsonrpc": "2.0", "id": 42, "result": {"content": []}})
    post = AsyncMock(return_value=PostReply(200, body))

    envelope = await ResponseWaiter(post, 1).send_and_wait(stream, "s1", 42, PAYLOAD)

    assert envelope["id"] == 42
    on_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_synchronous_text_body_is_wrapped(make_stream):
    stream, _ = make_stream(hang=True)
    post = AsyncMock(return_value=PostReply(200, "Plan created"))

    envelope = await ResponseWaiter(post, 1).send_and_wait(stream, "s1", 42, PAYLOAD)

    assert envelope["result"]["content"] == [{"type": "text", "text": "Plan created"}]
    assert envelope["id"] == 42


@pytest.mark.asyncio
async def test_rejected_post_closes_stream(make_stream):
    stream, on_close = make_stream(hang=True)
    post = AsyncMock(return_value=PostReply(400, "Bad session"))

    with pytest.raises(RequestRejected) as info:
        await ResponseWaiter(post, 1).send_and_wait(stream, "s1", 42, PAYLOAD)

    assert info.value.status_code == 400
    assert info.value.body == "Bad session"
    on_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_timeout_closes_stream_exactly_once(make_stream):
    stream, on_close = make_stream(_frame({"id": 1, "result": {}}), hang=True)

    with pytest.raises(ResponseTimeout) as info:
        await ResponseWaiter(_accepting_post(), response_timeout=0.05).send_and_wait(
            stream, "s1", 42, PAYLOAD
        )

    assert info.value.request_id == 42
    on_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_stream_ending_before_match(make_stream):
    stream, on_close = make_stream(_frame({"id": 1, "result": {}}))

    with pytest.raises(StreamEnded):
        await ResponseWaiter(_accepting_post(), 1).send_and_wait(stream, "s1", 42, PAYLOAD)

    on_close.assert_awaited_once()
