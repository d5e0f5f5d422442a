"""Suggestion parser - extract code proposals from assistant markdown

Classification is heuristic. A fenced block counts as a suggestion when any
rule in SUGGESTION_RULES accepts it, and it is kept only when its content
differs from the original code once both are trimmed.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from threadline.models.session import CodeThread
from threadline.models.suggestion import CodeSuggestion


# Opening fence with optional language tag, body, closing fence (non-greedy)
CODE_BLOCK_PATTERN = re.compile(r"```([^\n`]*)\n(.*?)```", re.DOTALL)

SUGGESTION_INDICATORS = re.compile(
    r"(suggest|better|improved|refactor|alternative|here's|try this)",
    re.IGNORECASE,
)

LOOKBEHIND_CHARS = 200
MIN_BODY_LENGTH = 20


@dataclass
class CodeBlock:
    """A fenced block and the text leading up to it"""
    language: str
    body: str
    preceding: str


def _has_indicator(block: CodeBlock, language: Optional[str]) -> bool:
    return SUGGESTION_INDICATORS.search(block.preceding) is not None


def _matches_language(block: CodeBlock, language: Optional[str]) -> bool:
    return bool(language) and block.language.lower() == language.lower()


def _is_substantial(block: CodeBlock, language: Optional[str]) -> bool:
    return len(block.body) > MIN_BODY_LENGTH


# Ordered, named rules; a block is a suggestion if any of them accepts it
SUGGESTION_RULES: List[Tuple[str, Callable[[CodeBlock, Optional[str]], bool]]] = [
    ("indicator_phrase", _has_indicator),
    ("language_tag", _matches_language),
    ("body_length", _is_substantial),
]


def find_code_blocks(markdown_text: str) -> List[CodeBlock]:
    """Find all closed fenced code blocks in order"""
    blocks = []
    for match in CODE_BLOCK_PATTERN.finditer(markdown_text):
        start = match.start()
        blocks.append(CodeBlock(
            language=match.group(1).strip(),
            body=match.group(2),
            preceding=markdown_text[max(0, start - LOOKBEHIND_CHARS):start],
        ))
    return blocks


def matching_rules(block: CodeBlock, language: Optional[str] = None) -> List[str]:
    """Names of the rules that accept a block"""
    return [name for name, rule in SUGGESTION_RULES if rule(block, language)]


def extract_description(preceding: str) -> Optional[str]:
    """Get the lead-in text from its first indicator phrase onward"""
    match = SUGGESTION_INDICATORS.search(preceding)
    if not match:
        return None
    description = preceding[match.start():].strip()
    return description or None


def parse_code_suggestions(
    markdown_text: str,
    original_code: str,
    language: Optional[str] = None,
) -> List[CodeSuggestion]:
    """Parse candidate code replacements out of assistant markdown.

    Args:
        markdown_text: The assistant message content
        original_code: The code the thread was opened on
        language: The session language, used by the language_tag rule

    Returns:
        Suggestions in the order their blocks appear
    """
    suggestions = []
    original = original_code.strip()

    for block in find_code_blocks(markdown_text):
        if not matching_rules(block, language):
            continue
        if block.body.strip() == original:
            continue
        suggestions.append(CodeSuggestion(
            original_code=original_code,
            suggested_code=block.body.strip("\n"),
            description=extract_description(block.preceding),
        ))

    return suggestions


def suggestions_for_thread(
    thread: CodeThread,
    language: Optional[str] = None,
) -> Dict[str, List[CodeSuggestion]]:
    """Parse every assistant message of a thread, keyed by message ID"""
    result: Dict[str, List[CodeSuggestion]] = {}
    for message in thread.messages:
        if message.role != "assistant" or not message.content:
            continue
        parsed = parse_code_suggestions(message.content, thread.selected_code, language)
        if parsed:
            result[message.id] = parsed
    return result
