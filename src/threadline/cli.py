"""CLI interface for threadline using Typer"""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table
from rich.text import Text

from threadline import __version__
from threadline.core.apply import apply_suggestion
from threadline.core.config import config_path, init_config, load_config_or_default, session_dir
from threadline.core.diff import compute_diff, render_diff
from threadline.core.export import session_to_json, session_to_markdown
from threadline.core.language import detect_language
from threadline.core.logger import setup_logging
from threadline.core.storage import SessionAutosaver, SessionStorage
from threadline.core.store import ReviewStore
from threadline.core.streaming import CycleState, HttpReviewEndpoint, StreamCoordinator
from threadline.core.suggestions import suggestions_for_thread
from threadline.core.threads import build_thread
from threadline.errors import ConfigInvalidError, OutOfRangeError
from threadline.models.config import ThreadlineConfig
from threadline.models.selection import SelectionRange
from threadline.models.session import CodeThread, ReviewSession, ThreadStatus
from threadline.models.state import (
    CreateThread,
    LoadSession,
    ReviewState,
    SetCode,
    SetSelection,
    UpdateThreadStatus,
)
from threadline.models.suggestion import CodeSuggestion, DiffType

app = typer.Typer(
    name="threadline",
    help="Threadline - threaded AI code review over line ranges",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"threadline version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", "-v", callback=version_callback, is_eager=True, help="Show version"
    ),
):
    """Threadline - annotate code ranges and discuss them with an AI reviewer"""


# ========== Helpers ==========


def _load_config() -> ThreadlineConfig:
    """Load config (or defaults) and set up logging"""
    try:
        config = load_config_or_default()
    except ConfigInvalidError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(config.log_level)
    return config


def _storage(config: ThreadlineConfig) -> SessionStorage:
    return SessionStorage(session_dir(config), max_sessions=config.max_sessions)


def _new_store(config: ThreadlineConfig) -> ReviewStore:
    return ReviewStore(ReviewState(
        editor_language=config.default_language,
        editor_theme=config.theme,
    ))


def _parse_span(value: str, label: str) -> Tuple[int, int]:
    """Parse 'A-B' or 'A' into a pair of ints"""
    try:
        if "-" in value:
            start, end = value.split("-", 1)
            return int(start), int(end)
        return int(value), int(value)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid {label} range: {value}")
        raise typer.Exit(1)


def _find_session(storage: SessionStorage, ref: str) -> ReviewSession:
    """Find a saved session by ID or unique ID prefix"""
    session = storage.load(ref)
    if session is not None:
        return session

    matches = [s for s in storage.load_all() if s.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]

    if matches:
        console.print(f"[red]Error:[/red] Session ID prefix is ambiguous: {ref}")
    else:
        console.print(f"[red]Error:[/red] Session not found: {ref}")
    raise typer.Exit(1)


def _find_thread(session: ReviewSession, ref: str) -> CodeThread:
    """Find a thread by ID or unique ID prefix"""
    exact = session.get_thread(ref)
    if exact is not None:
        return exact

    matches = [t for t in session.threads if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]

    if matches:
        console.print(f"[red]Error:[/red] Thread ID prefix is ambiguous: {ref}")
    else:
        console.print(f"[red]Error:[/red] Thread not found: {ref}")
    raise typer.Exit(1)


def _flat_suggestions(session: ReviewSession, thread: CodeThread) -> List[CodeSuggestion]:
    """All suggestions of a thread in message order"""
    result = []
    for suggestions in suggestions_for_thread(thread, session.language).values():
        result.extend(suggestions)
    return result


class _ReplyPrinter:
    """Store listener that echoes a thread's newest assistant reply as it grows"""

    def __init__(self, store: ReviewStore, thread_id: str):
        self.thread_id = thread_id
        self.message_id: Optional[str] = None
        self.printed = 0
        self._track(store.state)

    def _latest_reply(self, state: ReviewState):
        session = state.current_session
        thread = session.get_thread(self.thread_id) if session else None
        if thread is None:
            return None
        for message in reversed(thread.messages):
            if message.role == "assistant":
                return message
        return None

    def _track(self, state: ReviewState) -> None:
        message = self._latest_reply(state)
        if message is not None:
            self.message_id = message.id
            self.printed = len(message.content)

    def __call__(self, state: ReviewState) -> None:
        message = self._latest_reply(state)
        if message is None:
            return
        if message.id != self.message_id:
            self.message_id = message.id
            self.printed = 0
        delta = message.content[self.printed:]
        if delta:
            console.print(delta, end="", markup=False, highlight=False)
            self.printed = len(message.content)


async def _run_cycle(
    store: ReviewStore,
    config: ThreadlineConfig,
    storage: SessionStorage,
    thread_id: str,
    message: Optional[str] = None,
) -> CycleState:
    """Stream one reply into the store, autosaving as it goes.

    Without a message the thread's automatic first response is requested.
    """
    endpoint = HttpReviewEndpoint(config.endpoint_url, timeout=config.request_timeout)
    coordinator = StreamCoordinator(store, endpoint)
    autosaver = SessionAutosaver(storage, delay=config.autosave_delay)
    unsubscribe_saver = autosaver.attach(store)
    unsubscribe_printer = store.subscribe(_ReplyPrinter(store, thread_id))

    try:
        if message is None:
            thread = store.state.current_session.get_thread(thread_id)
            result = await coordinator.maybe_auto_respond(thread)
            return result if result is not None else CycleState.IDLE
        return await coordinator.send_message(thread_id, message)
    finally:
        console.print()
        unsubscribe_printer()
        unsubscribe_saver()
        autosaver.flush()
        coordinator.close()


def _report_cycle(store: ReviewStore, result: CycleState) -> None:
    if result == CycleState.FAILED:
        console.print(f"[red]Error:[/red] {store.state.error}")
        raise typer.Exit(1)
    if result == CycleState.IDLE:
        console.print("[yellow]No response requested[/yellow]")


# ========== Commands ==========


@app.command()
def init():
    """Create .threadline/config.yaml and the session directory"""
    path = config_path()
    defaults = ThreadlineConfig()
    if path.exists():
        if not typer.confirm("Config file already exists. Overwrite?"):
            raise typer.Exit(0)
        try:
            defaults = load_config_or_default()
        except ConfigInvalidError:
            console.print("[yellow]Existing config is invalid; starting from defaults[/yellow]")

    console.print("[bold]Threadline Configuration Setup[/bold]\n")

    endpoint_url = typer.prompt("Review endpoint URL", default=defaults.endpoint_url)
    storage_dir = typer.prompt("Session directory", default=defaults.storage_dir)
    max_sessions = typer.prompt("Sessions to keep", default=defaults.max_sessions, type=int)

    settings = defaults.model_dump()
    settings.update(endpoint_url=endpoint_url, storage_dir=storage_dir, max_sessions=max_sessions)
    try:
        config = init_config(**settings)
    except ValidationError as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[green]Created:[/green] {path}")
    console.print(f"[dim]Endpoint:[/dim] {config.endpoint_url}")
    console.print(f"[dim]Sessions:[/dim] {session_dir(config)} (keeping {config.max_sessions})")


@app.command()
def review(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to review"),
    lines: str = typer.Option(..., "--lines", "-l", help="Line range, e.g. 3-7"),
    columns: Optional[str] = typer.Option(
        None, "--columns", "-c", help="Column range C-D (end inclusive); default whole lines"
    ),
    message: str = typer.Option(
        "Please review this code.", "--message", "-m", help="Opening question"
    ),
    language: Optional[str] = typer.Option(None, "--language", help="Override language detection"),
    session_ref: Optional[str] = typer.Option(
        None, "--session", "-s", help="Add the thread to an existing session"
    ),
):
    """Open a thread on a range of FILE and stream the AI review"""
    config = _load_config()
    storage = _storage(config)
    code = file.read_text()
    language = language or detect_language(code, file.name)

    store = _new_store(config)
    if session_ref:
        store.dispatch(LoadSession(session=_find_session(storage, session_ref)))
    store.dispatch(SetCode(code=code, language=language, file_name=str(file)))

    start_line, end_line = _parse_span(lines, "line")
    if columns:
        start_column, end_column = _parse_span(columns, "column")
    else:
        document_lines = code.split("\n")
        last = document_lines[end_line - 1] if 1 <= end_line <= len(document_lines) else ""
        start_column, end_column = 1, len(last)

    try:
        selection = SelectionRange(
            start_line=start_line,
            end_line=end_line,
            start_column=start_column,
            end_column=end_column,
        )
        thread = build_thread(store.state.current_session, selection, message)
    except (ValidationError, OutOfRangeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    for other in store.state.current_session.active_threads():
        if other.overlaps(selection):
            console.print(
                f"[yellow]Overlaps thread {other.id[:8]}:[/yellow]", Text(other.display_name)
            )

    store.dispatch(SetSelection(selection=selection))
    store.dispatch(CreateThread(thread=thread))

    session = store.state.current_session
    console.print(f"[dim]Session: {session.id}[/dim]")
    console.print(f"[dim]Thread: {thread.id} ({thread.color}, lines {start_line}-{end_line})[/dim]\n")

    result = asyncio.run(_run_cycle(store, config, storage, thread.id))
    _report_cycle(store, result)


@app.command()
def reply(
    session_ref: str = typer.Argument(..., help="Session ID"),
    thread_ref: str = typer.Argument(..., help="Thread ID"),
    message: str = typer.Argument(..., help="Follow-up message"),
):
    """Send a follow-up message in a thread"""
    config = _load_config()
    storage = _storage(config)
    session = _find_session(storage, session_ref)
    thread = _find_thread(session, thread_ref)

    store = _new_store(config)
    store.dispatch(LoadSession(session=session))

    result = asyncio.run(_run_cycle(store, config, storage, thread.id, message))
    _report_cycle(store, result)


@app.command("sessions")
def sessions_list():
    """List saved review sessions"""
    config = _load_config()
    sessions = _storage(config).load_all()
    if not sessions:
        console.print("[yellow]No sessions found[/yellow]")
        return

    table = Table(title="Review Sessions")
    table.add_column("ID", style="cyan")
    table.add_column("File")
    table.add_column("Language")
    table.add_column("Threads")
    table.add_column("Updated")

    for session in sessions:
        active = len(session.active_threads())
        table.add_row(
            session.id,
            Path(session.file_name).name if session.file_name else "-",
            session.language,
            f"{len(session.threads)} ({active} active)",
            session.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("threads")
def threads_list(
    session_ref: str = typer.Argument(..., help="Session ID"),
    line: Optional[int] = typer.Option(None, "--line", help="Only threads covering this line"),
    column: Optional[int] = typer.Option(
        None, "--column", help="With --line, only threads containing this position"
    ),
):
    """List the threads of a session"""
    config = _load_config()
    session = _find_session(_storage(config), session_ref)

    threads = session.threads
    if line is not None:
        threads = session.threads_at_line(line)
        if column is not None:
            threads = [t for t in threads if t.contains(line, column)]

    if not threads:
        console.print("[yellow]No threads found[/yellow]")
        return

    table = Table(title=f"Threads of {Path(session.file_name).name if session.file_name else session.id}")
    table.add_column("ID", style="cyan")
    table.add_column("Thread")
    table.add_column("Color")
    table.add_column("Status")
    table.add_column("Messages")

    for thread in threads:
        table.add_row(
            thread.id,
            Text(thread.display_name),
            thread.color,
            thread.status.value,
            str(len(thread.messages)),
        )

    console.print(table)


@app.command()
def show(session_ref: str = typer.Argument(..., help="Session ID")):
    """Render a session's threads and transcripts"""
    config = _load_config()
    session = _find_session(_storage(config), session_ref)
    console.print(Markdown(session_to_markdown(session)))


@app.command()
def export(
    session_ref: str = typer.Argument(..., help="Session ID"),
    fmt: str = typer.Option("md", "--format", "-f", help="md or json"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file"),
):
    """Export a session as markdown or JSON"""
    config = _load_config()
    session = _find_session(_storage(config), session_ref)

    if fmt == "md":
        content = session_to_markdown(session)
    elif fmt == "json":
        content = session_to_json(session)
    else:
        console.print(f"[red]Error:[/red] Unknown format: {fmt}")
        raise typer.Exit(1)

    if output:
        output.write_text(content)
        console.print(f"[green]Exported:[/green] {output}")
    else:
        typer.echo(content)


@app.command()
def suggestions(
    session_ref: str = typer.Argument(..., help="Session ID"),
    thread_ref: str = typer.Argument(..., help="Thread ID"),
):
    """List the code suggestions in a thread with their diffs"""
    config = _load_config()
    session = _find_session(_storage(config), session_ref)
    thread = _find_thread(session, thread_ref)

    found = _flat_suggestions(session, thread)
    if not found:
        console.print("[yellow]No suggestions in this thread[/yellow]")
        return

    styles = {DiffType.EQUAL: "dim", DiffType.DELETE: "red", DiffType.INSERT: "green"}

    for index, suggestion in enumerate(found):
        console.print(f"[bold cyan]#{index}[/bold cyan] {suggestion.description or ''}")
        diff = compute_diff(suggestion.original_code, suggestion.suggested_code)
        for line, rendered in zip(diff, render_diff(diff).split("\n")):
            console.print(Text(rendered, style=styles[line.type]))
        console.print()


@app.command("apply")
def apply_command(
    session_ref: str = typer.Argument(..., help="Session ID"),
    thread_ref: str = typer.Argument(..., help="Thread ID"),
    index: int = typer.Option(0, "--index", "-i", help="Suggestion number from 'suggestions'"),
    force: bool = typer.Option(False, "--force", help="Apply even if the code has changed"),
    write: bool = typer.Option(False, "--write", "-w", help="Also write the file on disk"),
):
    """Apply a suggestion to the session's document"""
    config = _load_config()
    storage = _storage(config)
    session = _find_session(storage, session_ref)
    thread = _find_thread(session, thread_ref)

    found = _flat_suggestions(session, thread)
    if not 0 <= index < len(found):
        console.print(f"[red]Error:[/red] No suggestion #{index} ({len(found)} available)")
        raise typer.Exit(1)

    result = apply_suggestion(session, thread, found[index], force=force)
    if result.conflict is not None:
        console.print("[yellow]Conflict:[/yellow] the code at this thread's range has changed")
        console.print("[dim]Expected:[/dim]")
        console.print(Text(result.conflict.expected_code))
        console.print("[dim]Current:[/dim]")
        console.print(Text(result.conflict.current_code or "(range no longer exists)"))
        console.print("\nUse [bold]--force[/bold] to apply anyway.")
        raise typer.Exit(1)

    store = _new_store(config)
    store.dispatch(LoadSession(session=session))
    store.dispatch(SetCode(
        code=result.new_code,
        language=session.language,
        file_name=session.file_name,
    ))
    storage.save(store.state.current_session)
    console.print(f"[green]Applied suggestion #{index}[/green]")

    if write:
        if not session.file_name:
            console.print("[red]Error:[/red] Session has no file to write")
            raise typer.Exit(1)
        Path(session.file_name).write_text(result.new_code)
        console.print(f"[green]Wrote:[/green] {session.file_name}")


@app.command()
def resolve(
    session_ref: str = typer.Argument(..., help="Session ID"),
    thread_ref: str = typer.Argument(..., help="Thread ID"),
):
    """Mark a thread as resolved"""
    config = _load_config()
    storage = _storage(config)
    session = _find_session(storage, session_ref)
    thread = _find_thread(session, thread_ref)

    store = _new_store(config)
    store.dispatch(LoadSession(session=session))
    store.dispatch(UpdateThreadStatus(thread_id=thread.id, status=ThreadStatus.RESOLVED))
    storage.save(store.state.current_session)
    console.print(f"[green]Resolved thread {thread.id}[/green]")


@app.command()
def delete(session_ref: str = typer.Argument(..., help="Session ID")):
    """Delete a saved session"""
    config = _load_config()
    storage = _storage(config)
    session = _find_session(storage, session_ref)
    storage.delete(session.id)
    console.print(f"[green]Deleted session {session.id}[/green]")


@app.command()
def clear(yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation")):
    """Delete every saved session"""
    if not yes and not typer.confirm("Delete all saved sessions?"):
        raise typer.Exit(0)
    config = _load_config()
    removed = _storage(config).clear_all()
    console.print(f"[green]Deleted {removed} session(s)[/green]")


def main():
    """Entry point for CLI"""
    app()


if __name__ == "__main__":
    main()
