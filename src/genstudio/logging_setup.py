from __future__ import annotations
import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: Union[str, int] = "INFO", console: Optional[Console] = None) -> None:
    """Route library logs (retries, batch failures) through rich on stderr."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    handler = RichHandler(console=console or Console(stderr=True), show_path=False, markup=False)
    root = logging.getLogger("genstudio")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False
