"""
In-process flush event fan-out.

The upstream aggregator emits one ``flush`` per interval; every configured
destination subscribes its own handler.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from shared.logging import get_logger

FLUSH_EVENT = "flush"

Handler = Callable[..., Any]


class FlushEmitter:
    """Minimal event emitter for flush notifications.

    A handler that raises is logged and skipped; the remaining handlers still
    run.
    """

    def __init__(self):
        self.handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.logger = get_logger("cloudwatch.events")

    def on(self, event: str, handler: Handler):
        self.handlers[event].append(handler)

    def subscribed(self, event: str, handler: Handler) -> bool:
        return handler in self.handlers.get(event, [])

    def dispatch(self, event: str, *args) -> List[Tuple[Handler, Optional[Any]]]:
        """Call every handler for ``event``, pairing each with its result.

        A failed handler yields None.
        """
        outcomes: List[Tuple[Handler, Optional[Any]]] = []
        for handler in list(self.handlers.get(event, [])):
            try:
                outcomes.append((handler, handler(*args)))
            except Exception as e:
                self.logger.error(
                    "Flush handler failed",
                    event=event,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    exc_info=True
                )
                outcomes.append((handler, None))
        return outcomes

    def emit(self, event: str, *args) -> List[Optional[Any]]:
        return [result for _, result in self.dispatch(event, *args)]

    def emit_flush(self, timestamp: int, metrics: Mapping[str, Any]) -> List[Optional[Any]]:
        return self.emit(FLUSH_EVENT, timestamp, metrics)
