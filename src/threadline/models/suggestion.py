"""Suggestion models - parsed code proposals, diff lines and apply results"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CodeSuggestion(BaseModel):
    """A candidate replacement parsed out of an assistant message"""
    original_code: str
    suggested_code: str
    description: Optional[str] = None


class DiffType(str, Enum):
    """Kind of line in a diff"""
    EQUAL = "equal"
    DELETE = "delete"
    INSERT = "insert"


class DiffLine(BaseModel):
    """One line of an edit script"""
    type: DiffType
    text: str


class SuggestionConflict(BaseModel):
    """The document no longer holds the code a suggestion was made against"""
    expected_code: str
    current_code: Optional[str] = None  # None when the range is gone


class ApplyResult(BaseModel):
    """Outcome of applying a suggestion: new document or a conflict"""
    new_code: Optional[str] = None
    conflict: Optional[SuggestionConflict] = None

    @property
    def is_conflict(self) -> bool:
        return self.conflict is not None
