from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from protoroute.core.results import RouteOutcome

__all__ = ['RouteIntent', 'RouteConfiguration', 'ViewRouteConfiguration', 'ServiceRouteConfiguration']

DestinationCallback = Callable[[Any], None]


class RouteIntent(str, Enum):
    PERFORM = 'perform'
    GET_DESTINATION = 'get_destination'
    REMOVE = 'remove'


@dataclass
class RouteConfiguration:
    """
    Mutable options for one factory invocation.

    Built by the factory's ``default_configuration()``, adjusted by the caller's
    option callback, then handed to ``invoke``. ``prepare_destination`` runs on
    the constructed destination before ``route_completion`` receives it.
    """
    route_intent: RouteIntent = RouteIntent.PERFORM
    prepare_destination: Optional[DestinationCallback] = None
    route_completion: Optional[DestinationCallback] = None
    route_id: str = field(default_factory=lambda: f'route_{uuid.uuid4().hex[:12]}')
    outcome: RouteOutcome = field(default=None, repr=False)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if not isinstance(self.route_intent, RouteIntent):
            self.route_intent = RouteIntent(self.route_intent)
        if self.outcome is None:
            self.outcome = RouteOutcome(route_id=self.route_id)

    @property
    def supported_intents(self) -> frozenset:
        return frozenset({RouteIntent.PERFORM, RouteIntent.GET_DESTINATION})

    def deliver_prepared(self, destination: Any) -> None:
        """Run the prepare step for *destination* and record it."""
        if self.prepare_destination is not None:
            self.prepare_destination(destination)
        self.outcome.mark_prepared(destination)

    def deliver_completed(self, destination: Any) -> None:
        """Record completion and hand *destination* to the completion callback."""
        self.outcome.mark_completed(destination)
        if self.route_completion is not None:
            self.route_completion(destination)


@dataclass
class ViewRouteConfiguration(RouteConfiguration):
    animated: bool = True
    source: Any = None

    @property
    def supported_intents(self) -> frozenset:
        return frozenset(RouteIntent)


@dataclass
class ServiceRouteConfiguration(RouteConfiguration):
    pass
