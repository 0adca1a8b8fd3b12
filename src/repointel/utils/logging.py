"""Console and CI logging for repointel.

Three output modes:
- Human mode: [LEVEL] message (colored if TTY)
- Verbose mode: [LEVEL][HH:MM:SS] logger: message
- CI/JSON mode: {"level":"...","ts":"...","logger":"...","msg":"..."}

Informational records go to stdout; warnings and errors go to stderr so that
command output (paths, counts) stays pipeable.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

ROOT_LOGGER_NAME = "repointel"


class LogMode(Enum):
    """Logging output mode."""

    HUMAN = "human"
    VERBOSE = "verbose"
    JSON = "json"


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    GRAY = "\033[90m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.GRAY,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.RED,
}


def _is_tty(stream: TextIO | None) -> bool:
    return stream is not None and hasattr(stream, "isatty") and stream.isatty()


class ConsoleFormatter(logging.Formatter):
    """Formatter for terminal output.

    Human mode prints ``[LEVEL] message``. Verbose mode adds a wall-clock
    timestamp and the short logger name, which is handy when several
    repositories are scanned concurrently and their records interleave.
    """

    def __init__(self, use_colors: bool = True, verbose: bool = False) -> None:
        """Initialize console formatter.

        Args:
            use_colors: Whether to use ANSI colors
            verbose: Include timestamp and logger name
        """
        super().__init__()
        self.use_colors = use_colors
        self.verbose = verbose

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record."""
        label = f"[{record.levelname}]"
        if self.use_colors:
            color = LEVEL_COLORS.get(record.levelno, Colors.RESET)
            label = f"{color}{label}{Colors.RESET}"

        message = record.getMessage()
        if not self.verbose:
            return f"{label} {message}"

        timestamp = datetime.now().strftime("%H:%M:%S")
        short_name = record.name.removeprefix(f"{ROOT_LOGGER_NAME}.")
        return f"{label}[{timestamp}] {short_name}: {message}"


class JSONFormatter(logging.Formatter):
    """Formatter for JSON lines output (machine-readable).

    Format: {"level":"INFO","ts":"2026-01-31T19:45:23+00:00","logger":"repointel.pipeline","msg":"..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_entry: dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.now(UTC).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if hasattr(record, "extra_data"):
            log_entry.update(record.extra_data)

        return json.dumps(log_entry, sort_keys=False)


class RepoIntelLogger(logging.Logger):
    """Logger with structured field support for CI output."""

    def structured(
        self,
        level: int,
        msg: str,
        **kwargs: Any,
    ) -> None:
        """Log a message with additional structured data.

        Fields are merged into the JSON line in CI mode and ignored by the
        console formatters.

        Args:
            level: Log level
            msg: Log message
            **kwargs: Extra fields such as ``repo`` or ``snapshot_id``
        """
        if not self.isEnabledFor(level):
            return
        record = self.makeRecord(self.name, level, "(unknown)", 0, msg, (), None)
        if kwargs:
            record.extra_data = kwargs  # type: ignore[attr-defined]
        self.handle(record)


logging.setLoggerClass(RepoIntelLogger)


def get_logger(name: str = ROOT_LOGGER_NAME) -> RepoIntelLogger:
    """Get a repointel logger instance.

    Args:
        name: Logger name

    Returns:
        RepoIntelLogger instance
    """
    return logging.getLogger(name)  # type: ignore[return-value]


class _MaxLevelFilter(logging.Filter):
    """Pass only records strictly below a level."""

    def __init__(self, below: int) -> None:
        super().__init__()
        self.below = below

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.below


def setup_logging(
    mode: LogMode = LogMode.HUMAN,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    error_stream: TextIO | None = None,
) -> None:
    """Configure the ``repointel`` logger hierarchy.

    Args:
        mode: Output mode (human, verbose, json)
        level: Minimum log level
        stream: Stream for DEBUG/INFO records (default: stdout)
        error_stream: Stream for WARNING and above (default: stderr)
    """
    out = stream or sys.stdout
    err = error_stream or sys.stderr

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    def make_formatter(target: TextIO) -> logging.Formatter:
        if mode == LogMode.JSON:
            return JSONFormatter()
        return ConsoleFormatter(
            use_colors=_is_tty(target),
            verbose=mode == LogMode.VERBOSE,
        )

    info_handler = logging.StreamHandler(out)
    info_handler.setFormatter(make_formatter(out))
    info_handler.addFilter(_MaxLevelFilter(logging.WARNING))
    logger.addHandler(info_handler)

    error_handler = logging.StreamHandler(err)
    error_handler.setLevel(logging.WARNING)
    error_handler.setFormatter(make_formatter(err))
    logger.addHandler(error_handler)


def configure_from_cli(
    verbose: bool = False,
    quiet: bool = False,
    ci: bool = False,
) -> None:
    """Configure logging based on CLI flags.

    Args:
        verbose: Enable verbose mode with timestamps and debug records
        quiet: Suppress info messages (warnings and errors only)
        ci: Enable JSON lines output for CI/CD
    """
    if ci:
        mode = LogMode.JSON
    elif verbose:
        mode = LogMode.VERBOSE
    else:
        mode = LogMode.HUMAN

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    setup_logging(mode=mode, level=level)
