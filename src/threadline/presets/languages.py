"""Language detection tables - extension map and ordered content rules"""

from typing import Optional


EXTENSION_LANGUAGES = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "sql": "sql",
    "html": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
    "yaml": "yaml",
    "yml": "yaml",
    "sh": "shell",
    "bash": "shell",
}


# (language, substrings that must all appear) - first match wins
CONTENT_RULES = [
    ("python", ("def ", "import ")),
    ("typescript", ("function", "const")),
    ("go", ("func ", "package ")),
    ("rust", ("fn ", "let ")),
    ("java", ("class ", "public")),
    ("php", ("<?php",)),
    ("html", ("<!DOCTYPE html>",)),
]

FALLBACK_LANGUAGE = "plaintext"


def language_for_extension(file_name: str) -> Optional[str]:
    """Look up a language by file extension"""
    if "." not in file_name:
        return None
    ext = file_name.rsplit(".", 1)[1].lower()
    return EXTENSION_LANGUAGES.get(ext)
