"""Suggestion application - write a suggestion back into the document

Before splicing, the code currently at the thread's span is compared with
the code the suggestion was made against. A mismatch is reported as a
conflict; the caller decides whether to force the apply.
"""

from typing import Optional

from threadline.core.selection import extract_range
from threadline.errors import OutOfRangeError
from threadline.models.session import CodeThread, ReviewSession
from threadline.models.suggestion import ApplyResult, CodeSuggestion, SuggestionConflict


def normalize_code(text: str) -> str:
    """Normalize line endings and trailing whitespace for comparison"""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return "\n".join(line.rstrip() for line in text.split("\n")).rstrip()


def check_stale(
    session: ReviewSession,
    thread: CodeThread,
    suggestion: CodeSuggestion,
) -> Optional[SuggestionConflict]:
    """Compare the live code at the thread's span with the suggestion's original.

    Returns:
        A SuggestionConflict if they differ, otherwise None
    """
    try:
        current = extract_range(session.code, thread)
    except OutOfRangeError:
        return SuggestionConflict(expected_code=suggestion.original_code, current_code=None)

    if normalize_code(current) != normalize_code(suggestion.original_code):
        return SuggestionConflict(expected_code=suggestion.original_code, current_code=current)
    return None


def splice_lines(document: str, start_line: int, end_line: int, replacement: str) -> str:
    """Replace lines start_line..end_line (1-indexed, inclusive) with replacement.

    The replaced range is clamped to the document's line count.
    """
    lines = document.split("\n")
    start = min(max(start_line - 1, 0), len(lines))
    stop = min(start + (end_line - start_line + 1), len(lines))
    return "\n".join(lines[:start] + replacement.split("\n") + lines[stop:])


def apply_suggestion(
    session: ReviewSession,
    thread: CodeThread,
    suggestion: CodeSuggestion,
    force: bool = False,
) -> ApplyResult:
    """Apply a suggestion to the session's document.

    Args:
        session: Session holding the live document
        thread: Thread whose span the suggestion replaces
        suggestion: The parsed suggestion
        force: Skip the staleness check

    Returns:
        ApplyResult with new_code, or with conflict when the code at the
        thread's span no longer matches the suggestion's original
    """
    if not force:
        conflict = check_stale(session, thread, suggestion)
        if conflict is not None:
            return ApplyResult(conflict=conflict)

    new_code = splice_lines(
        session.code, thread.start_line, thread.end_line, suggestion.suggested_code
    )
    return ApplyResult(new_code=new_code)
