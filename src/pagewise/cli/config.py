"""CLI configuration constants and log rendering."""

from rich.console import Console
from rich.markup import escape

from ..debug import DebugCallback, truncate


class LogLevel:
    """Log level constants with numeric values for comparison.

    Standard logging hierarchy: DEBUG < INFO < WARNING < ERROR
    Lower numeric value = more verbose (shows more messages).
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40

    _names = {
        DEBUG: "DEBUG",
        INFO: "INFO",
        WARNING: "WARNING",
        ERROR: "ERROR",
    }

    _from_string = {
        "debug": DEBUG,
        "info": INFO,
        "warning": WARNING,
        "error": ERROR,
    }

    @classmethod
    def name(cls, level: int) -> str:
        """Get the name for a log level."""
        return cls._names.get(level, "UNKNOWN")

    @classmethod
    def from_string(cls, level_str: str) -> int:
        """Convert string to log level. Returns DEBUG if invalid."""
        return cls._from_string.get(level_str.lower(), cls.DEBUG)


LOG_MAX_MESSAGE_LENGTH = 500  # Characters before truncating log messages

_LEVEL_STYLES = {
    LogLevel.DEBUG: "dim",
    LogLevel.INFO: "cyan",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red",
}


def console_log_callback(console: Console, min_level: str = "warning") -> DebugCallback:
    """Build a debug callback that prints to a Rich console.

    Args:
        console: Console to print to (stderr for the CLI)
        min_level: Messages below this level are dropped
    """
    threshold = LogLevel.from_string(min_level)

    def callback(level: str, component: str, message: str) -> None:
        numeric = LogLevel.from_string(level)
        if numeric < threshold:
            return
        style = _LEVEL_STYLES.get(numeric, "dim")
        console.print(
            f"[{style}]{LogLevel.name(numeric):<7}[/{style}] [bold]{component}[/bold] "
            f"{escape(truncate(message, LOG_MAX_MESSAGE_LENGTH))}",
            markup=True,
            highlight=False
        )

    return callback
