"""Language detection from file name or content"""

from typing import Optional

from threadline.presets.languages import (
    CONTENT_RULES,
    FALLBACK_LANGUAGE,
    language_for_extension,
)


def detect_language(code: str, file_name: Optional[str] = None) -> str:
    """Detect the programming language of a document.

    The file extension wins when it is known; otherwise the first content
    rule whose markers all appear in the code decides.
    """
    if file_name:
        language = language_for_extension(file_name)
        if language:
            return language

    for language, markers in CONTENT_RULES:
        if all(marker in code for marker in markers):
            return language

    return FALLBACK_LANGUAGE
