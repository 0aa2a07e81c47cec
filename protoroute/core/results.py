import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional

from protoroute.core.exceptions import RouteOrderError

logger = logging.getLogger(__name__)


class RouteStage(str, Enum):
    PENDING = 'pending'
    PREPARED = 'prepared'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (RouteStage.COMPLETED, RouteStage.FAILED)


@dataclass
class RouteOutcome:
    """
    Two-phase record of a single factory invocation.

    Stages advance PENDING -> PREPARED -> COMPLETED, or end in FAILED. A
    completed destination must be the object that was prepared, so the
    prepare step always happens before completion and completion always sees
    the prepared destination.
    """
    route_id: str = ''
    stage: RouteStage = RouteStage.PENDING
    destination: Any = None
    error: Optional[BaseException] = None
    prepared_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    _done_callbacks: List[Callable[['RouteOutcome'], None]] = field(default_factory=list, repr=False)

    @property
    def is_prepared(self) -> bool:
        return self.stage in (RouteStage.PREPARED, RouteStage.COMPLETED)

    @property
    def is_completed(self) -> bool:
        return self.stage is RouteStage.COMPLETED

    @property
    def is_done(self) -> bool:
        return self.stage.is_terminal

    def mark_prepared(self, destination: Any) -> None:
        if self.stage is not RouteStage.PENDING:
            raise RouteOrderError(f"Cannot prepare route '{self.route_id}' in stage '{self.stage.value}'")
        self.destination = destination
        self.prepared_at = datetime.now(timezone.utc)
        self.stage = RouteStage.PREPARED
        logger.debug(f"[{self.route_id}] destination prepared: {type(destination).__name__}")

    def mark_completed(self, destination: Any) -> None:
        if self.stage.is_terminal:
            raise RouteOrderError(f"Route '{self.route_id}' already finished in stage '{self.stage.value}'")
        if self.stage is RouteStage.PREPARED and destination is not self.destination:
            raise RouteOrderError(
                f"Route '{self.route_id}' completed with {type(destination).__name__} "
                f"but prepared {type(self.destination).__name__}"
            )
        self.destination = destination
        self.completed_at = datetime.now(timezone.utc)
        self.stage = RouteStage.COMPLETED
        logger.debug(f"[{self.route_id}] route completed")
        self._fire_done()

    def mark_failed(self, error: BaseException) -> None:
        if self.stage.is_terminal:
            raise RouteOrderError(f"Route '{self.route_id}' already finished in stage '{self.stage.value}'")
        self.error = error
        self.completed_at = datetime.now(timezone.utc)
        self.stage = RouteStage.FAILED
        logger.debug(f"[{self.route_id}] route failed: {error}")
        self._fire_done()

    def add_done_callback(self, callback: Callable[['RouteOutcome'], None]) -> None:
        """Run *callback* when the outcome finishes, or now if it already has."""
        if self.is_done:
            callback(self)
        else:
            self._done_callbacks.append(callback)

    def _fire_done(self) -> None:
        callbacks, self._done_callbacks = self._done_callbacks, []
        for callback in callbacks:
            callback(self)

    def to_dict(self) -> dict:
        return {
            'route_id': self.route_id,
            'stage': self.stage.value,
            'destination_type': type(self.destination).__name__ if self.destination is not None else None,
            'error': str(self.error) if self.error else None,
            'prepared_at': self.prepared_at.isoformat() if self.prepared_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
