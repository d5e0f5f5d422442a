"""Rule tables: thread colors and language detection"""

from threadline.presets.colors import THREAD_COLORS, next_thread_color
from threadline.presets.languages import CONTENT_RULES, EXTENSION_LANGUAGES

__all__ = ["THREAD_COLORS", "next_thread_color", "CONTENT_RULES", "EXTENSION_LANGUAGES"]
