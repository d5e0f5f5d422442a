"""Tests for threadline models"""

import pytest
from pydantic import ValidationError

from threadline.models.request import LineRange, ReviewRequest
from threadline.models.selection import SelectionRange
from threadline.models.session import Message, ThreadStatus

from conftest import make_thread


def test_selection_range_contains():
    """Test SelectionRange.contains()"""
    range_ = SelectionRange(start_line=2, start_column=5, end_line=4, end_column=10)

    assert range_.contains(3, 1)  # Middle line
    assert range_.contains(2, 5)  # Start
    assert range_.contains(4, 10)  # End (inclusive)
    assert not range_.contains(1, 1)  # Before
    assert not range_.contains(5, 1)  # After
    assert not range_.contains(2, 4)  # Same line, before start column
    assert not range_.contains(4, 11)  # Same line, after end column


def test_selection_range_overlaps():
    """Test SelectionRange.overlaps()"""
    range1 = SelectionRange(start_line=1, start_column=1, end_line=3, end_column=1)
    range2 = SelectionRange(start_line=3, start_column=1, end_line=5, end_column=1)
    range3 = SelectionRange(start_line=6, start_column=1, end_line=7, end_column=1)

    assert range1.overlaps(range2)  # Share line 3
    assert range2.overlaps(range1)  # Symmetric
    assert not range1.overlaps(range3)  # Non-overlapping


def test_span_rejects_reversed_lines():
    with pytest.raises(ValidationError):
        SelectionRange(start_line=3, start_column=1, end_line=2, end_column=1)


def test_span_rejects_reversed_columns_on_one_line():
    with pytest.raises(ValidationError):
        SelectionRange(start_line=2, start_column=6, end_line=2, end_column=5)


def test_span_allows_reversed_columns_across_lines():
    span = SelectionRange(start_line=1, start_column=6, end_line=2, end_column=2)
    assert span.line_range == (1, 2)


def test_span_rejects_zero_line():
    with pytest.raises(ValidationError):
        SelectionRange(start_line=0, start_column=1, end_line=1, end_column=1)


def test_thread_defaults():
    thread = make_thread()
    assert thread.status == ThreadStatus.ACTIVE
    assert thread.messages == []
    assert not thread.has_assistant_reply


def test_thread_conversation_history():
    thread = make_thread(messages=[
        Message(role="user", content="why?"),
        Message(role="assistant", content="because"),
    ])

    assert thread.has_assistant_reply
    assert thread.conversation_history() == [
        {"role": "user", "content": "why?"},
        {"role": "assistant", "content": "because"},
    ]


def test_thread_display_name_truncates():
    thread = make_thread(selected_code="x" * 40)
    assert thread.display_name == "L2-2: " + "x" * 30 + "..."


def test_session_thread_lookup(session):
    first = make_thread(start_line=1, end_line=2, selected_code="line1\nline2")
    second = make_thread(start_line=4, end_line=4, selected_code="line4")
    second.status = ThreadStatus.RESOLVED
    session.threads = [first, second]

    assert session.get_thread(second.id) is second
    assert session.get_thread("missing") is None
    assert session.threads_at_line(2) == [first]
    assert session.threads_at_line(3) == []
    assert session.active_threads() == [first]


def test_review_request_payload_uses_camel_case():
    request = ReviewRequest(
        code="a\nb",
        language="python",
        selected_code="b",
        line_range=LineRange(start=2, end=2),
        user_message="hi",
        conversation_history=[{"role": "user", "content": "earlier"}],
    )

    assert request.to_payload() == {
        "code": "a\nb",
        "language": "python",
        "selectedCode": "b",
        "lineRange": {"start": 2, "end": 2},
        "userMessage": "hi",
        "conversationHistory": [{"role": "user", "content": "earlier"}],
    }
