"""Shared fixtures for threadline tests"""

from typing import AsyncIterator, List, Optional

import pytest

from threadline.core.store import ReviewStore
from threadline.errors import RequestFailedError
from threadline.models.request import ReviewRequest
from threadline.models.session import CodeThread, Message, ReviewSession
from threadline.models.state import CreateThread, ReviewState, SetCode

SAMPLE_CODE = "line1\nline2\nline3\nline4"


class FakeEndpoint:
    """Review endpoint that replays canned chunks"""

    def __init__(
        self,
        chunks: List[bytes],
        fail_after: Optional[int] = None,
        status_code: int = 500,
        error: Optional[Exception] = None,
    ):
        self.chunks = chunks
        self.error = error
        self.fail_after = fail_after
        self.status_code = status_code
        self.requests: List[ReviewRequest] = []
        self.on_chunk = None

    async def stream(self, request: ReviewRequest) -> AsyncIterator[bytes]:
        self.requests.append(request)
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                break
            yield chunk
            if self.on_chunk is not None:
                await self.on_chunk()
        if self.fail_after is not None:
            raise self.error or RequestFailedError(
                f"API error: {self.status_code}", status_code=self.status_code
            )


def make_thread(
    start_line: int = 2,
    end_line: int = 2,
    start_column: int = 1,
    end_column: int = 5,
    selected_code: str = "line2",
    messages: Optional[List[Message]] = None,
    color: str = "blue",
) -> CodeThread:
    return CodeThread(
        start_line=start_line,
        end_line=end_line,
        start_column=start_column,
        end_column=end_column,
        selected_code=selected_code,
        messages=messages or [],
        color=color,
    )


@pytest.fixture
def session() -> ReviewSession:
    return ReviewSession(code=SAMPLE_CODE, language="python", file_name="sample.py")


@pytest.fixture
def seeded_thread() -> CodeThread:
    """A thread holding only its opening user message"""
    return make_thread(messages=[Message(role="user", content="What does this do?")])


@pytest.fixture
def store(seeded_thread) -> ReviewStore:
    """Store with a session containing seeded_thread"""
    store = ReviewStore()
    store.dispatch(SetCode(code=SAMPLE_CODE, language="python", file_name="sample.py"))
    store.dispatch(CreateThread(thread=seeded_thread))
    return store


@pytest.fixture
def empty_state() -> ReviewState:
    return ReviewState()
