"""Console output for the relation migration: logging, progress and summary table.

All output goes through one themed rich ``console`` so that log lines and the
live progress panel do not overwrite each other.
"""

import logging
import os
from collections import deque
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol, Self, cast

from rich.console import Console, Group
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

SUCCESS_LEVEL = 25
NOTICE_LEVEL = 21
CUSTOM_LEVELS = {"SUCCESS": SUCCESS_LEVEL, "NOTICE": NOTICE_LEVEL}

FILE_LOG_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"


class ExtendedLogger(Protocol):
    """A ``logging.Logger`` that also has ``success`` and ``notice``."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def notice(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def success(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


console = Console(
    theme=Theme(
        {
            "logging.level.debug": "dim",
            "logging.level.info": "blue",
            "logging.level.notice": "cyan",
            "logging.level.success": "bold green",
            "logging.level.warning": "bold yellow",
            "logging.level.error": "bold red",
            "logging.level.critical": "bold red on white",
            "relation.created": "green",
            "relation.failed": "bold red",
            "relation.deferred": "yellow",
        },
    ),
)

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    markup=True,
    show_path=False,
    log_time_format="[%X]",
)


def _make_level_method(level: int) -> Callable[..., None]:
    def log_at_level(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(level):
            self._log(level, message, args, stacklevel=2, **kwargs)

    return log_at_level


def to_numeric_level(level: str) -> int:
    """Translate a level name, including SUCCESS and NOTICE, to its number."""
    name = level.upper()
    if name in CUSTOM_LEVELS:
        return CUSTOM_LEVELS[name]
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(level: str = "INFO", log_file: str | os.PathLike[str] | None = None) -> ExtendedLogger:
    """(Re)configure the root logger with the rich handler and an optional log file.

    Args:
        level: Logging level name (DEBUG, INFO, NOTICE, SUCCESS, WARNING, ERROR)
        log_file: File that additionally receives plain-text log lines

    Returns:
        The ``migration`` logger

    """
    for name, value in CUSTOM_LEVELS.items():
        logging.addLevelName(value, name)
        setattr(logging.Logger, name.lower(), _make_level_method(value))

    numeric_level = to_numeric_level(level)
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=numeric_level, format="%(message)s", handlers=handlers, force=True)

    logger = logging.getLogger("migration")
    logger.debug("Logging configured at %s", logging.getLevelName(numeric_level))
    return cast(ExtendedLogger, logger)


def render_summary_table(title: str, counters: Mapping[str, int]) -> Table:
    """Build a two-column table of counter names and values."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Outcome")
    table.add_column("Count", justify="right")
    for name, value in counters.items():
        style = f"relation.{name}" if value and name in ("created", "failed", "deferred") else None
        table.add_row(name, str(value), style=style)
    return table


class ProgressTracker:
    """Progress bar over the issues of a run with the last few issue keys below it.

    Use it as a context manager; outside of one, ``increment`` and
    ``add_log_item`` only keep count.
    """

    def __init__(self, description: str, total: int, log_title: str = "Recent items", max_log_items: int = 5) -> None:
        self.description = description
        self.log_title = log_title
        self.recent_items: deque[str] = deque(maxlen=max_log_items)
        self.processed_count = 0
        self.progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self.task_id = self.progress.add_task(description, total=total)
        self.live: Live | None = None

    def __enter__(self) -> Self:
        self.live = Live(self._renderable(), console=console, refresh_per_second=4, transient=False)
        self.live.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.live:
            self.live.__exit__(exc_type, exc_val, exc_tb)
            self.live = None

    def add_log_item(self, item: str) -> None:
        self.recent_items.append(item)
        self._refresh()

    def increment(self, advance: int = 1) -> None:
        self.processed_count += advance
        self.progress.update(self.task_id, completed=self.processed_count)
        self._refresh()

    def _renderable(self) -> Panel | Progress:
        if not self.recent_items:
            return self.progress
        recent = Text(f"{self.log_title}: ", style="bold yellow")
        recent.append(", ".join(self.recent_items), style="default")
        return Panel.fit(Group(self.progress, recent), title=self.description, border_style="blue")

    def _refresh(self) -> None:
        if self.live:
            self.live.update(self._renderable())
