"""Session model - a document and the review threads anchored to it"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from threadline.models.selection import LineSpan


def generate_id() -> str:
    """Generate a unique identifier"""
    return str(uuid4())


class ThreadStatus(str, Enum):
    """Lifecycle of a review thread"""
    ACTIVE = "active"
    RESOLVED = "resolved"


class Message(BaseModel):
    """One turn of a thread conversation"""
    id: str = Field(default_factory=generate_id)
    role: Literal["user", "assistant"]
    content: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class CodeThread(LineSpan):
    """A conversation anchored to a fixed span of the document"""
    id: str = Field(default_factory=generate_id)
    selected_code: str = Field(..., description="Captured text at time of selection")
    messages: List[Message] = Field(default_factory=list)
    status: ThreadStatus = ThreadStatus.ACTIVE
    color: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_assistant_reply(self) -> bool:
        """Whether any assistant message exists"""
        return any(m.role == "assistant" for m in self.messages)

    def get_message(self, message_id: str) -> Optional[Message]:
        """Get a message by ID"""
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def conversation_history(self) -> List[dict]:
        """Messages as role/content pairs, oldest first"""
        return [{"role": m.role, "content": m.content} for m in self.messages]

    @property
    def display_name(self) -> str:
        """Short display name for listings"""
        preview = self.selected_code[:30].replace("\n", " ")
        if len(self.selected_code) > 30:
            preview += "..."
        return f"L{self.start_line}-{self.end_line}: {preview}"


class ReviewSession(BaseModel):
    """The open document plus all its review threads"""
    id: str = Field(default_factory=generate_id)
    code: str
    language: str
    file_name: Optional[str] = None
    threads: List[CodeThread] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def get_thread(self, thread_id: str) -> Optional[CodeThread]:
        """Get a thread by ID"""
        for thread in self.threads:
            if thread.id == thread_id:
                return thread
        return None

    def threads_at_line(self, line: int) -> List[CodeThread]:
        """Threads whose line range covers a 1-indexed line"""
        return [t for t in self.threads if t.start_line <= line <= t.end_line]

    def active_threads(self) -> List[CodeThread]:
        """Threads that have not been resolved"""
        return [t for t in self.threads if t.status == ThreadStatus.ACTIVE]
