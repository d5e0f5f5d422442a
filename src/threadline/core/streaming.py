"""Streaming review - drive one request/response cycle into the store

Each cycle appends an empty assistant message to the thread and replaces its
content with the full accumulated reply as every chunk arrives. Any error
raised by the endpoint fails the cycle: the assistant message is deleted and
the error is recorded on the state.
"""

import codecs
import logging
from enum import Enum
from typing import AsyncIterator, List, Optional, Protocol, Set

import httpx

from threadline.core.store import ReviewStore
from threadline.errors import RequestFailedError
from threadline.models.request import HistoryEntry, LineRange, ReviewRequest
from threadline.models.session import CodeThread, Message
from threadline.models.state import (
    AddMessage,
    DeleteMessage,
    ReviewState,
    SetError,
    SetLoading,
    UpdateMessage,
)

logger = logging.getLogger(__name__)


class ReviewEndpoint(Protocol):
    """Anything that turns a review request into a stream of reply bytes"""

    def stream(self, request: ReviewRequest) -> AsyncIterator[bytes]:
        """Yield reply chunks; raise RequestFailedError on failure"""
        ...


class HttpReviewEndpoint:
    """POSTs review requests to an HTTP endpoint and streams the body back"""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def stream(self, request: ReviewRequest) -> AsyncIterator[bytes]:
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            async with client.stream("POST", self.url, json=request.to_payload()) as response:
                if not response.is_success:
                    raise RequestFailedError(
                        f"API error: {response.status_code}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    yield chunk
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RequestFailedError(f"Request failed: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()


class CycleState(str, Enum):
    """States of one request/response cycle"""
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamCoordinator:
    """Runs review cycles against an endpoint, at most one per thread.

    Also owns the auto-response guard: the set of thread IDs that have
    already had their automatic first response triggered.
    """

    def __init__(self, store: ReviewStore, endpoint: ReviewEndpoint):
        self.store = store
        self.endpoint = endpoint
        self._in_flight: Set[str] = set()
        self._auto_responded: Set[str] = set()
        self._unsubscribe = store.subscribe(self._prune_markers)

    @property
    def is_streaming(self) -> bool:
        """Whether any cycle is in flight"""
        return bool(self._in_flight)

    def is_busy(self, thread_id: str) -> bool:
        """Whether a cycle is in flight for a thread"""
        return thread_id in self._in_flight

    def close(self) -> None:
        """Stop watching the store"""
        self._unsubscribe()

    async def send_message(
        self,
        thread_id: str,
        user_message: str,
        conversation_history: Optional[List[dict]] = None,
        add_user_message: bool = True,
    ) -> CycleState:
        """Run one review cycle for a thread.

        Args:
            thread_id: Thread to converse in
            user_message: Text sent as the user's turn
            conversation_history: Prior turns; defaults to the thread's messages
            add_user_message: Append user_message to the thread first

        Returns:
            COMPLETED or FAILED, or IDLE when nothing was sent (no session,
            unknown thread, or a cycle already in flight for the thread)
        """
        session = self.store.state.current_session
        thread = session.get_thread(thread_id) if session else None
        if thread is None:
            return CycleState.IDLE
        if self.is_busy(thread_id):
            logger.warning("Thread %s already has a response in flight", thread_id)
            return CycleState.IDLE

        if conversation_history is None:
            conversation_history = thread.conversation_history()

        self._in_flight.add(thread_id)
        self.store.dispatch(SetLoading(loading=True))
        try:
            if add_user_message:
                self.store.dispatch(AddMessage(
                    thread_id=thread_id,
                    message=Message(role="user", content=user_message),
                ))

            assistant = Message(role="assistant", content="")
            self.store.dispatch(AddMessage(thread_id=thread_id, message=assistant))

            request = ReviewRequest(
                code=session.code,
                language=session.language,
                selected_code=thread.selected_code,
                line_range=LineRange(start=thread.start_line, end=thread.end_line),
                user_message=user_message,
                conversation_history=[HistoryEntry(**entry) for entry in conversation_history],
            )
            return await self._run_cycle(thread_id, assistant.id, request)
        finally:
            self._in_flight.discard(thread_id)
            if self.store.state.is_loading and not self._in_flight:
                self.store.dispatch(SetLoading(loading=False))

    async def _run_cycle(
        self,
        thread_id: str,
        message_id: str,
        request: ReviewRequest,
    ) -> CycleState:
        state = CycleState.SENDING
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        accumulated = ""

        try:
            async for chunk in self.endpoint.stream(request):
                state = CycleState.STREAMING
                text = decoder.decode(chunk)
                if not text:
                    continue
                accumulated += text
                self._publish(thread_id, message_id, accumulated)

            tail = decoder.decode(b"", final=True)
            if tail:
                accumulated += tail
                self._publish(thread_id, message_id, accumulated)

        except Exception as e:
            logger.error("Review request for thread %s failed in %s: %s", thread_id, state.value, e)
            self.store.dispatch(SetError(error=str(e) or type(e).__name__))
            self.store.dispatch(DeleteMessage(thread_id=thread_id, message_id=message_id))
            return CycleState.FAILED

        logger.info("Review for thread %s complete (%d chars)", thread_id, len(accumulated))
        return CycleState.COMPLETED

    def _publish(self, thread_id: str, message_id: str, content: str) -> None:
        self.store.dispatch(UpdateMessage(
            thread_id=thread_id,
            message_id=message_id,
            content=content,
        ))

    # ========== Auto-response guard ==========

    def should_auto_respond(self, thread: CodeThread) -> bool:
        """Whether a thread is waiting for its automatic first response"""
        return (
            len(thread.messages) == 1
            and thread.messages[0].role == "user"
            and not thread.has_assistant_reply
            and thread.id not in self._auto_responded
            and not self.is_busy(thread.id)
            and self.store.state.current_session is not None
        )

    async def maybe_auto_respond(self, thread: CodeThread) -> Optional[CycleState]:
        """Trigger the automatic first response once per thread.

        Returns:
            The final state of the cycle, or None if none was triggered
        """
        if not self.should_auto_respond(thread):
            return None
        self._auto_responded.add(thread.id)
        return await self.send_message(
            thread.id, thread.messages[0].content, [], add_user_message=False
        )

    def forget_thread(self, thread_id: str) -> None:
        """Drop the auto-response marker of a thread"""
        self._auto_responded.discard(thread_id)

    def _prune_markers(self, state: ReviewState) -> None:
        """Drop markers of threads no longer in the current session"""
        session = state.current_session
        live = {t.id for t in session.threads} if session else set()
        self._auto_responded &= live
