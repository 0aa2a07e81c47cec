# protoroute/infrastructure/event_bus/memory_event_bus.py
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, List

from protoroute.core.exceptions import RouteError
from protoroute.domain.ports.event_bus_port import EventBusPort

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _RecordedEvent:
    ts: float
    signal_name: str
    payload: Any


class MemoryEventBus(EventBusPort):
    """
    In-process signal bus.

    Plain handlers run inline, in subscription order, inside ``publish``.
    Coroutine handlers are scheduled on the running loop, or run to completion
    when no loop is running. Routing defects (:class:`RouteError`) raised by a
    handler propagate to the publisher; any other handler error is logged.
    """

    def __init__(self, component_id: str = "event_bus_memory", max_history: int = 1000) -> None:
        self.component_id = component_id
        self._subs: Dict[str, List[Callable[[Any], Any | Coroutine]]] = defaultdict(list)
        self._max_history = max_history
        self._history: List[_RecordedEvent] = []
        self._publish_count = 0

        logger.info("[%s] constructed (max_history=%s)", self.component_id, self._max_history)

    def subscribe(self, signal_name: str, handler: Callable[[Any], Any]) -> None:
        self._subs[signal_name].append(handler)
        logger.info(
            '[%s] SUBSCRIBED to signal "%s". Total subscribers for this signal: %d.',
            self.component_id,
            signal_name,
            len(self._subs[signal_name]),
        )

    def unsubscribe(self, signal_name: str, handler: Callable[[Any], Any]) -> None:
        try:
            self._subs[signal_name].remove(handler)
            logger.debug("[%s] unsubscribed %s → %s", self.component_id, signal_name, handler)
        except (KeyError, ValueError):
            pass

    def subscriber_count(self, signal_name: str) -> int:
        return len(self._subs.get(signal_name, ()))

    def publish(self, signal_name: str, payload: Any | None = None) -> None:
        self._record(signal_name, payload)
        self._publish_count += 1

        # snapshot: handlers may unsubscribe themselves while being dispatched
        handlers = tuple(self._subs.get(signal_name, ()))

        logger.info(
            '[%s] PUBLISHING signal "%s". Found %d subscriber(s).',
            self.component_id,
            signal_name,
            len(handlers),
        )

        if not handlers:
            logger.debug(f"[{self.component_id}] No subscribers for '{signal_name}', publish is a no-op.")
            return

        for i, handler in enumerate(handlers):
            logger.debug(f"[{self.component_id}] Dispatching '{signal_name}' to handler #{i+1} "
                         f"({getattr(handler, '__qualname__', str(handler))})")
            try:
                if inspect.iscoroutinefunction(handler):
                    self._dispatch_async(signal_name, handler, payload)
                else:
                    handler(payload)
            except RouteError:
                raise
            except Exception as exc:
                logger.exception("[%s] Error in handler for signal %s: %s", self.component_id, signal_name, exc)

    def _dispatch_async(self, signal_name: str, handler: Callable[[Any], Coroutine], payload: Any) -> None:
        if self._inside_running_loop():
            task = asyncio.get_running_loop().create_task(handler(payload))
            task.add_done_callback(lambda t: self._log_task_error(signal_name, t))
        else:
            asyncio.run(handler(payload))

    def _log_task_error(self, signal_name: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[%s] Async handler for signal %s failed: %s", self.component_id, signal_name, exc)

    def _record(self, signal_name: str, payload: Any) -> None:
        if self._max_history <= 0:
            return
        self._history.append(_RecordedEvent(time.time(), signal_name, payload))
        if len(self._history) > self._max_history:
            self._history.pop(0)

    def history(self) -> List[_RecordedEvent]:
        return list(self._history)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'subscribers': {k: len(v) for k, v in self._subs.items()},
            'history_size': len(self._history),
            'publish_count': self._publish_count,
        }

    @staticmethod
    def _inside_running_loop() -> bool:
        try:
            asyncio.get_running_loop()
            return True
        except RuntimeError:
            return False
