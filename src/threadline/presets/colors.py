"""Thread color palette"""

from typing import Sequence

from threadline.models.session import CodeThread


THREAD_COLORS = (
    "blue",
    "purple",
    "green",
    "orange",
    "pink",
    "cyan",
    "yellow",
    "red",
)


def next_thread_color(existing_threads: Sequence[CodeThread]) -> str:
    """Get the first palette color no existing thread holds.

    Once every color is taken, cycle through the palette by thread count.
    """
    used = {t.color for t in existing_threads}
    for color in THREAD_COLORS:
        if color not in used:
            return color
    return THREAD_COLORS[len(existing_threads) % len(THREAD_COLORS)]
