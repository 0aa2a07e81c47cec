# protoroute/domain/ports/event_bus_port.py

"""Event bus interface used to announce registration milestones."""

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class EventBusPort(Protocol):
    """Interface for signal publishing and subscription."""

    def publish(self, signal_name: str, payload: Any = None) -> None:
        """
        Publish a signal to subscribers.

        Args:
            signal_name: Name of the signal
            payload: Signal data
        """
        ...

    def subscribe(self, signal_name: str, handler: Callable[[Any], None]) -> None:
        """
        Subscribe to a signal.

        Args:
            signal_name: Name of the signal
            handler: Function to call when the signal is published
        """
        ...

    def unsubscribe(self, signal_name: str, handler: Callable[[Any], None]) -> None:
        """
        Remove a previously subscribed handler. Unknown handlers are ignored.
        """
        ...
