"""Core functionality for threadline"""

from threadline.core.apply import apply_suggestion
from threadline.core.diff import compute_diff
from threadline.core.reducer import reduce
from threadline.core.selection import extract_selection, selection_from_cursor
from threadline.core.store import ReviewStore
from threadline.core.streaming import CycleState, HttpReviewEndpoint, StreamCoordinator
from threadline.core.suggestions import parse_code_suggestions

__all__ = [
    "apply_suggestion",
    "compute_diff",
    "reduce",
    "extract_selection",
    "selection_from_cursor",
    "ReviewStore",
    "CycleState",
    "HttpReviewEndpoint",
    "StreamCoordinator",
    "parse_code_suggestions",
]
