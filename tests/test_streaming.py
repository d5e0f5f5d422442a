"""Tests for streaming review cycles"""

import json

import httpx
import pytest

from threadline.core.store import ReviewStore
from threadline.core.streaming import CycleState, HttpReviewEndpoint, StreamCoordinator
from threadline.errors import RequestFailedError
from threadline.models.request import LineRange, ReviewRequest
from threadline.models.session import Message
from threadline.models.state import CreateThread, DeleteThread

from conftest import FakeEndpoint


def assistant_contents(store, thread_id):
    """Record each distinct content the newest assistant reply goes through"""
    seen = []

    def listener(state):
        thread = state.current_session.get_thread(thread_id)
        replies = [m for m in thread.messages if m.role == "assistant"]
        if replies and (not seen or seen[-1] != replies[-1].content):
            seen.append(replies[-1].content)

    store.subscribe(listener)
    return seen


def make_request():
    return ReviewRequest(
        code="x = 1",
        language="python",
        selected_code="x = 1",
        line_range=LineRange(start=1, end=1),
        user_message="Why?",
    )


# ========== Cycles ==========


@pytest.mark.asyncio
async def test_chunks_accumulate_into_one_reply(store, seeded_thread):
    endpoint = FakeEndpoint([b"Hello", b" World", b"!"])
    coordinator = StreamCoordinator(store, endpoint)
    seen = assistant_contents(store, seeded_thread.id)

    result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.COMPLETED
    assert seen == ["", "Hello", "Hello World", "Hello World!"]

    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [(m.role, m.content) for m in thread.messages] == [
        ("user", "What does this do?"),
        ("user", "Explain"),
        ("assistant", "Hello World!"),
    ]
    assert not store.state.is_loading
    assert store.state.error is None


@pytest.mark.asyncio
async def test_request_defaults_history_to_thread(store, seeded_thread):
    endpoint = FakeEndpoint([b"ok"])
    coordinator = StreamCoordinator(store, endpoint)

    await coordinator.send_message(seeded_thread.id, "Explain")

    request = endpoint.requests[0]
    assert request.code == "line1\nline2\nline3\nline4"
    assert request.language == "python"
    assert request.selected_code == "line2"
    assert request.line_range == LineRange(start=2, end=2)
    assert request.user_message == "Explain"
    assert [(h.role, h.content) for h in request.conversation_history] == [
        ("user", "What does this do?"),
    ]


@pytest.mark.asyncio
async def test_explicit_history_is_sent_verbatim(store, seeded_thread):
    endpoint = FakeEndpoint([b"ok"])
    coordinator = StreamCoordinator(store, endpoint)

    await coordinator.send_message(
        seeded_thread.id, "Explain", conversation_history=[], add_user_message=False
    )

    assert endpoint.requests[0].conversation_history == []
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [m.role for m in thread.messages] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_multibyte_character_split_across_chunks(store, seeded_thread):
    endpoint = FakeEndpoint([b"caf\xc3", b"\xa9 ", "✓".encode("utf-8")])
    coordinator = StreamCoordinator(store, endpoint)
    seen = assistant_contents(store, seeded_thread.id)

    await coordinator.send_message(seeded_thread.id, "Explain")

    assert seen == ["", "caf", "café ", "café ✓"]
    assert all("�" not in content for content in seen)


@pytest.mark.asyncio
async def test_failure_removes_reply_and_sets_error(store, seeded_thread):
    endpoint = FakeEndpoint([b"Partial"], fail_after=1, status_code=500)
    coordinator = StreamCoordinator(store, endpoint)

    result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.FAILED
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [(m.role, m.content) for m in thread.messages] == [
        ("user", "What does this do?"),
        ("user", "Explain"),
    ]
    assert store.state.error == "API error: 500"
    assert not store.state.is_loading
    assert not coordinator.is_streaming


@pytest.mark.asyncio
async def test_failure_before_first_chunk(store, seeded_thread):
    endpoint = FakeEndpoint([], fail_after=0, status_code=503)
    coordinator = StreamCoordinator(store, endpoint)

    result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.FAILED
    assert store.state.error == "API error: 503"
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert not thread.has_assistant_reply


@pytest.mark.asyncio
async def test_unexpected_error_mid_stream_fails_cycle(store, seeded_thread):
    endpoint = FakeEndpoint(
        [b"partial", b" more"], fail_after=1, error=ConnectionResetError("connection reset")
    )
    coordinator = StreamCoordinator(store, endpoint)

    result = await coordinator.send_message(seeded_thread.id, "again?")

    assert result == CycleState.FAILED
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [(m.role, m.content) for m in thread.messages] == [
        ("user", "What does this do?"),
        ("user", "again?"),
    ]
    assert store.state.error == "connection reset"
    assert not store.state.is_loading
    assert not coordinator.is_busy(seeded_thread.id)


@pytest.mark.asyncio
async def test_unexpected_error_before_first_chunk_fails_cycle(store, seeded_thread):
    endpoint = FakeEndpoint([], fail_after=0, error=RuntimeError())
    coordinator = StreamCoordinator(store, endpoint)

    result = await coordinator.send_message(seeded_thread.id, "again?")

    assert result == CycleState.FAILED
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert not thread.has_assistant_reply
    assert store.state.error == "RuntimeError"


@pytest.mark.asyncio
async def test_loading_flag_spans_the_cycle(store, seeded_thread):
    endpoint = FakeEndpoint([b"a", b"b"])
    coordinator = StreamCoordinator(store, endpoint)
    flags = []

    async def record():
        flags.append((store.state.is_loading, coordinator.is_busy(seeded_thread.id)))

    endpoint.on_chunk = record
    await coordinator.send_message(seeded_thread.id, "Explain")

    assert flags == [(True, True), (True, True)]
    assert not store.state.is_loading
    assert not coordinator.is_busy(seeded_thread.id)


@pytest.mark.asyncio
async def test_second_send_while_in_flight_is_ignored(store, seeded_thread):
    endpoint = FakeEndpoint([b"one", b"two"])
    coordinator = StreamCoordinator(store, endpoint)
    nested = []

    async def send_again():
        if not nested:
            nested.append(await coordinator.send_message(seeded_thread.id, "Again"))

    endpoint.on_chunk = send_again
    result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.COMPLETED
    assert nested == [CycleState.IDLE]
    assert len(endpoint.requests) == 1
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [m.content for m in thread.messages if m.role == "user"] == [
        "What does this do?",
        "Explain",
    ]


@pytest.mark.asyncio
async def test_send_without_session_or_thread_is_idle(seeded_thread):
    endpoint = FakeEndpoint([b"x"])
    empty = StreamCoordinator(ReviewStore(), endpoint)

    assert await empty.send_message(seeded_thread.id, "Hi") == CycleState.IDLE
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_send_to_unknown_thread_is_idle(store):
    endpoint = FakeEndpoint([b"x"])
    coordinator = StreamCoordinator(store, endpoint)

    assert await coordinator.send_message("missing", "Hi") == CycleState.IDLE
    assert endpoint.requests == []
    assert not store.state.is_loading


# ========== Auto-response ==========


@pytest.mark.asyncio
async def test_auto_response_uses_opening_message(store, seeded_thread):
    endpoint = FakeEndpoint([b"It prints."])
    coordinator = StreamCoordinator(store, endpoint)

    result = await coordinator.maybe_auto_respond(seeded_thread)

    assert result == CycleState.COMPLETED
    request = endpoint.requests[0]
    assert request.user_message == "What does this do?"
    assert request.conversation_history == []

    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert [(m.role, m.content) for m in thread.messages] == [
        ("user", "What does this do?"),
        ("assistant", "It prints."),
    ]


@pytest.mark.asyncio
async def test_auto_response_fires_once_even_after_failure(store, seeded_thread):
    endpoint = FakeEndpoint([], fail_after=0)
    coordinator = StreamCoordinator(store, endpoint)

    assert await coordinator.maybe_auto_respond(seeded_thread) == CycleState.FAILED

    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert len(thread.messages) == 1
    assert not coordinator.should_auto_respond(thread)
    assert await coordinator.maybe_auto_respond(thread) is None
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_forget_thread_rearms_auto_response(store, seeded_thread):
    endpoint = FakeEndpoint([], fail_after=0)
    coordinator = StreamCoordinator(store, endpoint)
    await coordinator.maybe_auto_respond(seeded_thread)

    coordinator.forget_thread(seeded_thread.id)

    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert coordinator.should_auto_respond(thread)


@pytest.mark.asyncio
async def test_deleted_thread_markers_are_pruned(store, seeded_thread):
    endpoint = FakeEndpoint([], fail_after=0)
    coordinator = StreamCoordinator(store, endpoint)
    await coordinator.maybe_auto_respond(seeded_thread)

    store.dispatch(DeleteThread(thread_id=seeded_thread.id))
    store.dispatch(CreateThread(thread=seeded_thread))

    assert coordinator.should_auto_respond(seeded_thread)


def test_only_unanswered_opening_messages_auto_respond(store, seeded_thread):
    coordinator = StreamCoordinator(store, FakeEndpoint([]))
    empty = seeded_thread.model_copy(update={"messages": []})
    answered = seeded_thread.model_copy(update={
        "messages": [*seeded_thread.messages, Message(role="assistant", content="ok")],
    })

    assert coordinator.should_auto_respond(seeded_thread)
    assert not coordinator.should_auto_respond(empty)
    assert not coordinator.should_auto_respond(answered)


@pytest.mark.asyncio
async def test_closed_coordinator_keeps_markers(store, seeded_thread):
    coordinator = StreamCoordinator(store, FakeEndpoint([], fail_after=0))
    await coordinator.maybe_auto_respond(seeded_thread)
    coordinator.close()

    store.dispatch(DeleteThread(thread_id=seeded_thread.id))
    store.dispatch(CreateThread(thread=seeded_thread))

    assert not coordinator.should_auto_respond(seeded_thread)


# ========== HTTP endpoint ==========


@pytest.mark.asyncio
async def test_http_endpoint_streams_body():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(200, content=b"Hello World")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        endpoint = HttpReviewEndpoint("http://test/api/review", client=client)
        chunks = [chunk async for chunk in endpoint.stream(make_request())]

    assert b"".join(chunks) == b"Hello World"
    assert received[0].method == "POST"
    assert str(received[0].url) == "http://test/api/review"
    assert json.loads(received[0].content) == {
        "code": "x = 1",
        "language": "python",
        "selectedCode": "x = 1",
        "lineRange": {"start": 1, "end": 1},
        "userMessage": "Why?",
        "conversationHistory": [],
    }


@pytest.mark.asyncio
async def test_http_endpoint_rejects_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, content=b"nope"))

    async with httpx.AsyncClient(transport=transport) as client:
        endpoint = HttpReviewEndpoint("http://test/api/review", client=client)
        with pytest.raises(RequestFailedError) as exc_info:
            async for _ in endpoint.stream(make_request()):
                pass

    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "API error: 500"


@pytest.mark.asyncio
async def test_http_endpoint_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        endpoint = HttpReviewEndpoint("http://test/api/review", client=client)
        with pytest.raises(RequestFailedError) as exc_info:
            async for _ in endpoint.stream(make_request()):
                pass

    assert exc_info.value.status_code is None
    assert "connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_endpoint_wraps_malformed_url():
    endpoint = HttpReviewEndpoint("http://[::1")

    with pytest.raises(RequestFailedError) as exc_info:
        async for _ in endpoint.stream(make_request()):
            pass

    assert str(exc_info.value).startswith("Request failed: ")


@pytest.mark.asyncio
async def test_malformed_url_fails_cycle(store, seeded_thread):
    coordinator = StreamCoordinator(store, HttpReviewEndpoint("http://[::1"))

    result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.FAILED
    thread = store.state.current_session.get_thread(seeded_thread.id)
    assert not thread.has_assistant_reply
    assert store.state.error.startswith("Request failed: ")


@pytest.mark.asyncio
async def test_http_failure_surfaces_through_coordinator(store, seeded_thread):
    transport = httpx.MockTransport(lambda request: httpx.Response(502))

    async with httpx.AsyncClient(transport=transport) as client:
        endpoint = HttpReviewEndpoint("http://test/api/review", client=client)
        coordinator = StreamCoordinator(store, endpoint)
        result = await coordinator.send_message(seeded_thread.id, "Explain")

    assert result == CycleState.FAILED
    assert store.state.error == "API error: 502"
