"""Event fan-out for library callers.

The ScriptRunner reports progress through named events:

    - script:beforeExecute (script_path, params)
    - script:afterExecute  (script_path, result)
    - script:error         (script_path, error)
    - script:log           (script_path, message)
    - tui:beforeStart      ()
    - tui:afterEnd         ()

Classes:
    - EventEmitter: Ordered, synchronous handler registry
"""

from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()

EventHandler = Callable[..., Any]

SCRIPT_BEFORE_EXECUTE = "script:beforeExecute"
SCRIPT_AFTER_EXECUTE = "script:afterExecute"
SCRIPT_ERROR = "script:error"
SCRIPT_LOG = "script:log"
TUI_BEFORE_START = "tui:beforeStart"
TUI_AFTER_END = "tui:afterEnd"

KNOWN_EVENTS: frozenset[str] = frozenset(
    {
        SCRIPT_BEFORE_EXECUTE,
        SCRIPT_AFTER_EXECUTE,
        SCRIPT_ERROR,
        SCRIPT_LOG,
        TUI_BEFORE_START,
        TUI_AFTER_END,
    }
)


class EventEmitter:
    """Registry mapping event names to ordered handler lists.

    Handlers run synchronously, in registration order. A handler that raises
    is logged and does not prevent the remaining handlers from running.

    Example:
        emitter = EventEmitter()
        emitter.on("script:log", lambda path, message: print(message))
        emitter.emit("script:log", "/scripts/a.py", "hello")
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event_name: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event_name``."""
        if event_name not in KNOWN_EVENTS:
            logger.debug("event_name_unknown", event_name=event_name)
        self._handlers.setdefault(event_name, []).append(handler)

    def off(self, event_name: str, handler: EventHandler) -> None:
        """Remove the first registration of ``handler`` for ``event_name``.

        Removing a handler that is not registered is a no-op.
        """
        handlers = self._handlers.get(event_name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event_name]

    def emit(self, event_name: str, *args: Any) -> bool:
        """Call every handler of ``event_name`` with ``args``.

        Returns:
            True if at least one handler was registered.
        """
        handlers = list(self._handlers.get(event_name, ()))
        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.warning(
                    "event_handler_failed",
                    event_name=event_name,
                    error=str(e),
                )
        return bool(handlers)

    def listener_count(self, event_name: str) -> int:
        """Return the number of handlers registered for ``event_name``."""
        return len(self._handlers.get(event_name, ()))
