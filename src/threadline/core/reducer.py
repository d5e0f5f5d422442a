"""Review reducer - pure (state, action) -> state transitions

The reducer never mutates its input and never raises. Thread and message
actions return the state object unchanged when there is no current session
or when the referenced thread or message does not exist.
"""

from datetime import datetime
from typing import Callable, Dict, Optional, Type

from threadline.models.session import CodeThread, Message, ReviewSession, generate_id
from threadline.models.state import (
    Action,
    AddMessage,
    CreateThread,
    DeleteMessage,
    DeleteThread,
    LoadSession,
    NewSession,
    ReviewState,
    SetActiveThread,
    SetCode,
    SetError,
    SetFileName,
    SetLanguage,
    SetLoading,
    SetSelection,
    SetTheme,
    UpdateMessage,
    UpdateThreadStatus,
)


def _update_thread(
    state: ReviewState,
    thread_id: str,
    updater: Callable[[CodeThread], Optional[CodeThread]],
) -> ReviewState:
    """Replace one thread of the current session.

    The updater returns the new thread, or None to leave the state untouched.
    """
    session = state.current_session
    if session is None:
        return state

    for index, thread in enumerate(session.threads):
        if thread.id == thread_id:
            break
    else:
        return state

    updated = updater(thread)
    if updated is None:
        return state

    now = datetime.now()
    threads = list(session.threads)
    threads[index] = updated.model_copy(update={"updated_at": now})
    return state.model_copy(update={
        "current_session": session.model_copy(update={"threads": threads, "updated_at": now}),
    })


def _has_message(thread: CodeThread, message_id: str) -> bool:
    return thread.get_message(message_id) is not None


def _set_code(state: ReviewState, action: SetCode) -> ReviewState:
    now = datetime.now()
    session = state.current_session
    if session is None:
        session = ReviewSession(
            id=generate_id(),
            code=action.code,
            language=action.language,
            file_name=action.file_name,
            created_at=now,
            updated_at=now,
        )
    else:
        session = session.model_copy(update={
            "code": action.code,
            "language": action.language,
            "file_name": action.file_name,
            "updated_at": now,
        })
    return state.model_copy(update={
        "current_session": session,
        "editor_language": action.language,
    })


def _set_selection(state: ReviewState, action: SetSelection) -> ReviewState:
    return state.model_copy(update={"selected_range": action.selection})


def _create_thread(state: ReviewState, action: CreateThread) -> ReviewState:
    session = state.current_session
    if session is None:
        return state
    return state.model_copy(update={
        "current_session": session.model_copy(update={
            "threads": [*session.threads, action.thread],
            "updated_at": datetime.now(),
        }),
        "active_thread_id": action.thread.id,
        "selected_range": None,
    })


def _add_message(state: ReviewState, action: AddMessage) -> ReviewState:
    return _update_thread(state, action.thread_id, lambda thread: thread.model_copy(
        update={"messages": [*thread.messages, action.message]}
    ))


def _update_message(state: ReviewState, action: UpdateMessage) -> ReviewState:
    def replace_content(thread: CodeThread) -> Optional[CodeThread]:
        if not _has_message(thread, action.message_id):
            return None
        messages: list[Message] = [
            m.model_copy(update={"content": action.content}) if m.id == action.message_id else m
            for m in thread.messages
        ]
        return thread.model_copy(update={"messages": messages})

    return _update_thread(state, action.thread_id, replace_content)


def _delete_message(state: ReviewState, action: DeleteMessage) -> ReviewState:
    def remove(thread: CodeThread) -> Optional[CodeThread]:
        if not _has_message(thread, action.message_id):
            return None
        return thread.model_copy(update={
            "messages": [m for m in thread.messages if m.id != action.message_id],
        })

    return _update_thread(state, action.thread_id, remove)


def _update_thread_status(state: ReviewState, action: UpdateThreadStatus) -> ReviewState:
    return _update_thread(state, action.thread_id, lambda thread: thread.model_copy(
        update={"status": action.status}
    ))


def _delete_thread(state: ReviewState, action: DeleteThread) -> ReviewState:
    session = state.current_session
    if session is None or session.get_thread(action.thread_id) is None:
        return state
    active = None if state.active_thread_id == action.thread_id else state.active_thread_id
    return state.model_copy(update={
        "current_session": session.model_copy(update={
            "threads": [t for t in session.threads if t.id != action.thread_id],
            "updated_at": datetime.now(),
        }),
        "active_thread_id": active,
    })


def _set_active_thread(state: ReviewState, action: SetActiveThread) -> ReviewState:
    return state.model_copy(update={"active_thread_id": action.thread_id})


def _load_session(state: ReviewState, action: LoadSession) -> ReviewState:
    return state.model_copy(update={
        "current_session": action.session,
        "editor_language": action.session.language,
        "active_thread_id": None,
        "selected_range": None,
    })


def _new_session(state: ReviewState, action: NewSession) -> ReviewState:
    return ReviewState(editor_theme=state.editor_theme)


def _set_language(state: ReviewState, action: SetLanguage) -> ReviewState:
    return state.model_copy(update={"editor_language": action.language})


def _set_theme(state: ReviewState, action: SetTheme) -> ReviewState:
    return state.model_copy(update={"editor_theme": action.theme})


def _set_file_name(state: ReviewState, action: SetFileName) -> ReviewState:
    session = state.current_session
    if session is None:
        return state
    return state.model_copy(update={
        "current_session": session.model_copy(update={
            "file_name": action.file_name,
            "updated_at": datetime.now(),
        }),
    })


def _set_loading(state: ReviewState, action: SetLoading) -> ReviewState:
    return state.model_copy(update={"is_loading": action.loading})


def _set_error(state: ReviewState, action: SetError) -> ReviewState:
    return state.model_copy(update={"error": action.error, "is_loading": False})


HANDLERS: Dict[Type, Callable[[ReviewState, Action], ReviewState]] = {
    SetCode: _set_code,
    SetSelection: _set_selection,
    CreateThread: _create_thread,
    AddMessage: _add_message,
    UpdateMessage: _update_message,
    DeleteMessage: _delete_message,
    UpdateThreadStatus: _update_thread_status,
    DeleteThread: _delete_thread,
    SetActiveThread: _set_active_thread,
    LoadSession: _load_session,
    NewSession: _new_session,
    SetLanguage: _set_language,
    SetTheme: _set_theme,
    SetFileName: _set_file_name,
    SetLoading: _set_loading,
    SetError: _set_error,
}


def reduce(state: ReviewState, action: Action) -> ReviewState:
    """Apply an action to the state, returning the new state"""
    handler = HANDLERS.get(type(action))
    if handler is None:
        return state
    return handler(state, action)
