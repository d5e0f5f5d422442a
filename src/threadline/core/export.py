"""Export - render a review session as markdown or JSON"""

from threadline.models.session import CodeThread, Message, ReviewSession


def session_to_markdown(session: ReviewSession) -> str:
    """Render every thread with its code and transcript as markdown"""
    lines = []

    # Header
    lines.append(f"# Code Review: {session.file_name or 'Untitled'}")
    lines.append("")
    lines.append(f"**Language:** {session.language}")
    lines.append(f"**Created:** {session.created_at.isoformat()}")
    lines.append(f"**Updated:** {session.updated_at.isoformat()}")
    lines.append(f"**Threads:** {len(session.threads)}")
    lines.append("")
    lines.append("---")
    lines.append("")

    for i, thread in enumerate(session.threads, 1):
        lines.extend(_thread_section(thread, i, session.language))
        lines.append("")
        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def _thread_section(thread: CodeThread, number: int, language: str) -> list[str]:
    """Generate the markdown for a single thread"""
    lines = []

    if thread.start_line == thread.end_line:
        where = f"Line {thread.start_line}"
    else:
        where = f"Lines {thread.start_line}-{thread.end_line}"
    lines.append(f"## Thread {number}: {where} ({thread.status.value})")
    lines.append("")

    lines.append(f"```{language}")
    lines.append(thread.selected_code)
    lines.append("```")
    lines.append("")

    for message in sorted(thread.messages, key=lambda m: m.timestamp):
        lines.extend(_message_block(message))

    return lines


def _message_block(message: Message) -> list[str]:
    role_label = message.role.capitalize()
    timestamp = message.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    return [f"### {role_label} ({timestamp})", "", message.content, ""]


def session_to_json(session: ReviewSession) -> str:
    """Dump a session as indented JSON"""
    return session.model_dump_json(indent=2)
