"""Review request - the JSON body sent to the review endpoint"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class LineRange(BaseModel):
    start: int
    end: int


class HistoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ReviewRequest(BaseModel):
    """Serialized with camelCase keys via ``to_payload``"""
    model_config = ConfigDict(populate_by_name=True)

    code: str
    language: str
    selected_code: str = Field(..., alias="selectedCode")
    line_range: LineRange = Field(..., alias="lineRange")
    user_message: str = Field(..., alias="userMessage")
    conversation_history: List[HistoryEntry] = Field(
        default_factory=list, alias="conversationHistory"
    )

    def to_payload(self) -> dict:
        """Wire format for the endpoint"""
        return self.model_dump(mode="json", by_alias=True)
