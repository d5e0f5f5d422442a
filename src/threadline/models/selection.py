"""Selection model - a 1-indexed line/column span of the document"""

from pydantic import BaseModel, Field, model_validator


class LineSpan(BaseModel):
    """A span of the document.

    Lines and columns are 1-indexed. ``end_column`` is inclusive: it is the
    column of the last selected character.
    """
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    start_column: int = Field(..., ge=1)
    end_column: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "LineSpan":
        """Ensure the span does not end before it starts"""
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line {self.start_line} is after end_line {self.end_line}"
            )
        if self.start_line == self.end_line and self.start_column > self.end_column:
            raise ValueError(
                f"start_column {self.start_column} is after end_column {self.end_column}"
            )
        return self

    @property
    def line_range(self) -> tuple[int, int]:
        """(start_line, end_line)"""
        return (self.start_line, self.end_line)

    def contains(self, line: int, column: int) -> bool:
        """Check if a position is within this span"""
        if line < self.start_line or line > self.end_line:
            return False
        if line == self.start_line and column < self.start_column:
            return False
        if line == self.end_line and column > self.end_column:
            return False
        return True

    def overlaps(self, other: "LineSpan") -> bool:
        """Check if the line ranges of two spans overlap"""
        return self.start_line <= other.end_line and other.start_line <= self.end_line


class SelectionRange(LineSpan):
    """Transient editor selection, never persisted"""
    pass
