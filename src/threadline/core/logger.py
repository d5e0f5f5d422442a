"""Logging setup"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(log_level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Records go to stderr through rich, and also to log_file when given.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Optional path of a plain-text log file
    """
    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False),
    ]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )
