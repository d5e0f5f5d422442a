"""Review state and the typed actions that transform it"""

from typing import Literal, Optional, Union

from pydantic import BaseModel

from threadline.models.selection import SelectionRange
from threadline.models.session import CodeThread, Message, ReviewSession, ThreadStatus

Theme = Literal["vs-dark", "vs-light"]

DEFAULT_EDITOR_LANGUAGE = "typescript"
DEFAULT_EDITOR_THEME: Theme = "vs-dark"


class ReviewState(BaseModel):
    """Everything the store owns"""
    current_session: Optional[ReviewSession] = None

    # UI state
    active_thread_id: Optional[str] = None
    selected_range: Optional[SelectionRange] = None

    # Editor state
    editor_language: str = DEFAULT_EDITOR_LANGUAGE
    editor_theme: Theme = DEFAULT_EDITOR_THEME

    # Loading / error
    is_loading: bool = False
    error: Optional[str] = None


class SetCode(BaseModel):
    type: Literal["SET_CODE"] = "SET_CODE"
    code: str
    language: str
    file_name: Optional[str] = None


class SetSelection(BaseModel):
    type: Literal["SET_SELECTION"] = "SET_SELECTION"
    selection: Optional[SelectionRange] = None


class CreateThread(BaseModel):
    type: Literal["CREATE_THREAD"] = "CREATE_THREAD"
    thread: CodeThread


class AddMessage(BaseModel):
    type: Literal["ADD_MESSAGE"] = "ADD_MESSAGE"
    thread_id: str
    message: Message


class UpdateMessage(BaseModel):
    """Replace a message's full content (not an append)"""
    type: Literal["UPDATE_MESSAGE"] = "UPDATE_MESSAGE"
    thread_id: str
    message_id: str
    content: str


class DeleteMessage(BaseModel):
    type: Literal["DELETE_MESSAGE"] = "DELETE_MESSAGE"
    thread_id: str
    message_id: str


class UpdateThreadStatus(BaseModel):
    type: Literal["UPDATE_THREAD_STATUS"] = "UPDATE_THREAD_STATUS"
    thread_id: str
    status: ThreadStatus


class DeleteThread(BaseModel):
    type: Literal["DELETE_THREAD"] = "DELETE_THREAD"
    thread_id: str


class SetActiveThread(BaseModel):
    type: Literal["SET_ACTIVE_THREAD"] = "SET_ACTIVE_THREAD"
    thread_id: Optional[str] = None


class LoadSession(BaseModel):
    type: Literal["LOAD_SESSION"] = "LOAD_SESSION"
    session: ReviewSession


class NewSession(BaseModel):
    type: Literal["NEW_SESSION"] = "NEW_SESSION"


class SetLanguage(BaseModel):
    type: Literal["SET_LANGUAGE"] = "SET_LANGUAGE"
    language: str


class SetTheme(BaseModel):
    type: Literal["SET_THEME"] = "SET_THEME"
    theme: Theme


class SetFileName(BaseModel):
    type: Literal["SET_FILE_NAME"] = "SET_FILE_NAME"
    file_name: Optional[str] = None


class SetLoading(BaseModel):
    type: Literal["SET_LOADING"] = "SET_LOADING"
    loading: bool


class SetError(BaseModel):
    type: Literal["SET_ERROR"] = "SET_ERROR"
    error: Optional[str] = None


Action = Union[
    SetCode,
    SetSelection,
    CreateThread,
    AddMessage,
    UpdateMessage,
    DeleteMessage,
    UpdateThreadStatus,
    DeleteThread,
    SetActiveThread,
    LoadSession,
    NewSession,
    SetLanguage,
    SetTheme,
    SetFileName,
    SetLoading,
    SetError,
]
