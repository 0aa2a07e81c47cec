from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from protoroute.domain.configuration import RouteConfiguration


@runtime_checkable
class RouterFactoryPort(Protocol):
    """
    The operations the routing layer consumes from a router factory.

    Factories are process-lifetime singletons; registries hold them by
    reference only.
    """

    def can_complete_synchronously(self) -> bool:
        """True when ``invoke`` always finishes (prepare + completion) before returning."""
        ...

    def default_configuration(self) -> RouteConfiguration:
        ...

    def enumerate_registered_producers(self) -> Sequence[type]:
        """Concrete classes this factory has registered as destination producers."""
        ...

    def validate_registered_producers(self, predicate: Callable[[type], bool]) -> Optional[type]:
        """Return the first registered producer failing *predicate*, or ``None``."""
        ...

    def invoke(self, configuration: RouteConfiguration) -> Any:
        """
        Execute the configured construction request and return the live route.

        The factory must call ``configuration.prepare_destination`` before
        ``configuration.route_completion``, with the same destination.
        """
        ...
