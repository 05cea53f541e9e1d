"""Debug callback plumbing shared by every component.

Components never print or configure logging themselves. They forward
``(level, component, message)`` triples to an optional callback that the
embedding application (the CLI, a test) decides how to render.
"""

from collections.abc import Callable

DebugCallback = Callable[[str, str, str], None]


class Debuggable:
    """Mixin for objects that report progress through a debug callback."""

    _debug_callback: DebugCallback | None = None

    def set_debug_callback(self, callback: DebugCallback | None) -> None:
        """Set the debug callback for detailed execution logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
                      level: 'debug', 'info', 'warning', 'error'
                      component: Source component name
                      message: Log message
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        """Send a debug log message if callback is set."""
        if self._debug_callback:
            self._debug_callback(level, component, message)


def truncate(text: str, max_len: int = 100) -> str:
    """Shorten text for log previews."""
    return text[:max_len] + "..." if len(text) > max_len else text
