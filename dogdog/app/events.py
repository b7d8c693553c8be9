from __future__ import annotations

"""Tiny pub/sub event bus for UI layers."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CHECKPOINT_REACHED = "checkpoint_reached"
GAME_OVER = "game_over"
FALLBACK_APPLIED = "fallback_applied"
SESSION_ENDED = "session_ended"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        # a failing handler must not break the game loop
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                logger.exception("Event handler for %s failed", event)
