"""Range extraction - carve selected code out of a document by line/column span

Conventions (1-indexed throughout):

- ``start_column`` is the column of the first selected character. It may be
  ``len(line) + 1``, which selects nothing on the first line.
- ``end_column`` is the column of the last selected character (inclusive),
  so a single-line extraction is ``line[start_column - 1:end_column]``. It may
  be ``0`` (nothing on the last line) up to ``len(line) + 1``, the cursor
  position past the end of the line.

Anything outside those bounds raises OutOfRangeError. Nothing is clamped.
"""

from typing import Optional, Tuple

from threadline.errors import OutOfRangeError
from threadline.models.selection import LineSpan, SelectionRange


def line_count(document: str) -> int:
    """Get the number of lines in a document"""
    return len(document.split("\n"))


def extract_selection(
    document: str,
    start_line: int,
    start_column: int,
    end_line: int,
    end_column: int,
) -> str:
    """Extract the text covered by a 1-indexed, end-inclusive span.

    Args:
        document: The full document
        start_line: First line of the span
        start_column: Column of the first selected character
        end_line: Last line of the span
        end_column: Column of the last selected character (inclusive)

    Returns:
        The selected text, lines joined with ``\\n``

    Raises:
        OutOfRangeError: If the span does not lie within the document
    """
    lines = document.split("\n")
    _check_span(lines, start_line, start_column, end_line, end_column)

    if start_line == end_line:
        return lines[start_line - 1][start_column - 1:end_column]

    selected = [lines[start_line - 1][start_column - 1:]]
    selected.extend(lines[start_line:end_line - 1])
    selected.append(lines[end_line - 1][:end_column])
    return "\n".join(selected)


def extract_range(document: str, span: LineSpan) -> str:
    """Extract the text covered by a selection or thread span"""
    return extract_selection(
        document, span.start_line, span.start_column, span.end_line, span.end_column
    )


def selection_from_cursor(
    start: Tuple[int, int],
    end: Tuple[int, int],
) -> Optional[SelectionRange]:
    """Convert two zero-indexed (row, col) editor cursors into a selection.

    The cursors may come in either order. The text between them is exactly
    what extract_range returns for the result. An empty selection gives None.
    """
    if start == end:
        return None

    first = min(start, end)
    last = max(start, end)

    # A zero-indexed exclusive end column is the 1-indexed inclusive one
    return SelectionRange(
        start_line=first[0] + 1,
        start_column=first[1] + 1,
        end_line=last[0] + 1,
        end_column=last[1],
    )


def _check_span(
    lines: list[str],
    start_line: int,
    start_column: int,
    end_line: int,
    end_column: int,
) -> None:
    total = len(lines)
    if not 1 <= start_line <= total:
        raise OutOfRangeError(f"start_line {start_line} outside 1..{total}")
    if not 1 <= end_line <= total:
        raise OutOfRangeError(f"end_line {end_line} outside 1..{total}")
    if start_line > end_line:
        raise OutOfRangeError(f"start_line {start_line} is after end_line {end_line}")

    first_len = len(lines[start_line - 1])
    last_len = len(lines[end_line - 1])
    if not 1 <= start_column <= first_len + 1:
        raise OutOfRangeError(
            f"start_column {start_column} outside 1..{first_len + 1} on line {start_line}"
        )
    if not 0 <= end_column <= last_len + 1:
        raise OutOfRangeError(
            f"end_column {end_column} outside 0..{last_len + 1} on line {end_line}"
        )
    if start_line == end_line and end_column < start_column - 1:
        raise OutOfRangeError(
            f"end_column {end_column} is before start_column {start_column}"
        )
