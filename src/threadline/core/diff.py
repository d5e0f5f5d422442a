"""Line diff - a cheap greedy edit script between two text blocks

This is not a minimal diff. It walks both line lists once, looking a single
line ahead to recognise a pure deletion or insertion, and otherwise pairs the
differing lines as a delete followed by an insert.
"""

from typing import List

from threadline.models.suggestion import DiffLine, DiffType


def compute_diff(original: str, suggested: str) -> List[DiffLine]:
    """Compute a line-level edit script from original to suggested.

    Tie-break order at a mismatch:
        1. original[i + 1] == suggested[j]  -> delete original[i]
        2. suggested[j + 1] == original[i]  -> insert suggested[j]
        3. otherwise                        -> delete original[i], insert suggested[j]
    """
    old = original.split("\n")
    new = suggested.split("\n")
    result: List[DiffLine] = []
    i = j = 0

    while i < len(old) or j < len(new):
        if i >= len(old):
            result.append(DiffLine(type=DiffType.INSERT, text=new[j]))
            j += 1
        elif j >= len(new):
            result.append(DiffLine(type=DiffType.DELETE, text=old[i]))
            i += 1
        elif old[i] == new[j]:
            result.append(DiffLine(type=DiffType.EQUAL, text=old[i]))
            i += 1
            j += 1
        elif i + 1 < len(old) and old[i + 1] == new[j]:
            result.append(DiffLine(type=DiffType.DELETE, text=old[i]))
            i += 1
        elif j + 1 < len(new) and new[j + 1] == old[i]:
            result.append(DiffLine(type=DiffType.INSERT, text=new[j]))
            j += 1
        else:
            result.append(DiffLine(type=DiffType.DELETE, text=old[i]))
            result.append(DiffLine(type=DiffType.INSERT, text=new[j]))
            i += 1
            j += 1

    return result


_PREFIXES = {
    DiffType.EQUAL: " ",
    DiffType.DELETE: "-",
    DiffType.INSERT: "+",
}


def render_diff(diff: List[DiffLine]) -> str:
    """Render an edit script as ' ', '-', '+' prefixed lines"""
    return "\n".join(f"{_PREFIXES[line.type]} {line.text}" for line in diff)


def side_of(diff: List[DiffLine], keep: DiffType) -> str:
    """Rebuild one side of the diff: EQUAL lines plus the given kind"""
    return "\n".join(line.text for line in diff if line.type in (DiffType.EQUAL, keep))
