from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

log = logging.getLogger("minimarket.store")


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    action: str
    entity_id: Optional[int] = None


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Synchronous, ordered fan-out of store changes to registered listeners.

    A listener that raises is logged and skipped so the remaining listeners
    still run. With ``strict=True`` the first failure propagates instead.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> list[Listener]:
        return list(self._listeners)

    def notify(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                if self.strict:
                    raise
                log.exception(
                    "listener_failed kind=%s action=%s entity_id=%s listener=%r",
                    event.kind,
                    event.action,
                    event.entity_id,
                    listener,
                )
