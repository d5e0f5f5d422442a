"""Thread construction - anchor a new conversation to a selection"""

from datetime import datetime
from typing import Optional

from threadline.core.selection import extract_range
from threadline.models.selection import SelectionRange
from threadline.models.session import CodeThread, Message, ReviewSession
from threadline.presets.colors import next_thread_color


def build_thread(
    session: ReviewSession,
    selection: SelectionRange,
    first_message: Optional[str] = None,
) -> CodeThread:
    """Create a thread over a selection of the session's document.

    The selected code is carved out of the current document and the thread
    gets the next free palette color. When first_message is given it seeds
    the conversation as a user message.

    Raises:
        OutOfRangeError: If the selection lies outside the document
    """
    now = datetime.now()
    messages = []
    if first_message:
        messages.append(Message(role="user", content=first_message, timestamp=now))

    return CodeThread(
        start_line=selection.start_line,
        end_line=selection.end_line,
        start_column=selection.start_column,
        end_column=selection.end_column,
        selected_code=extract_range(session.code, selection),
        messages=messages,
        color=next_thread_color(session.threads),
        created_at=now,
        updated_at=now,
    )
