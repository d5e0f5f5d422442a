"""Data models for threadline"""

from threadline.models.config import ThreadlineConfig
from threadline.models.request import ReviewRequest
from threadline.models.selection import SelectionRange
from threadline.models.session import CodeThread, Message, ReviewSession, ThreadStatus
from threadline.models.state import ReviewState
from threadline.models.suggestion import ApplyResult, CodeSuggestion, DiffLine, DiffType

__all__ = [
    "ApplyResult",
    "CodeSuggestion",
    "CodeThread",
    "DiffLine",
    "DiffType",
    "Message",
    "ReviewRequest",
    "ReviewSession",
    "ReviewState",
    "SelectionRange",
    "ThreadStatus",
    "ThreadlineConfig",
]
