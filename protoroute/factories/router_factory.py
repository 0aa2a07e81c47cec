"""
Base classes for router factories.

A router factory is the producer side of a capability: it knows which
concrete classes it builds (its *registered producers*) and how to turn a
:class:`~protoroute.domain.configuration.RouteConfiguration` into a
destination. The routing layer only consumes the operations described by
:class:`~protoroute.domain.ports.router_factory_port.RouterFactoryPort`;
these bases give factory authors the bookkeeping and the
build -> prepare -> complete sequence for free.

Subclass :class:`ViewRouterFactory` or :class:`ServiceRouterFactory` and
implement ``build_destination``. Mix in :class:`AsyncRouterFactory` first for
factories whose construction has to await something.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, List, Optional, Sequence, Type

from protoroute.core.exceptions import RoutePerformError
from protoroute.domain.configuration import (
    RouteConfiguration,
    RouteIntent,
    ServiceRouteConfiguration,
    ViewRouteConfiguration,
)

__all__ = ['RouteHandle', 'RouterFactory', 'ViewRouterFactory', 'ServiceRouterFactory', 'AsyncRouterFactory']

logger = logging.getLogger(__name__)


class RouteHandle:
    """Live route returned by ``invoke``. Callers track or cancel it."""

    def __init__(self, factory: 'RouterFactory', configuration: RouteConfiguration) -> None:
        self.factory = factory
        self.configuration = configuration
        self.task: Optional[asyncio.Task] = None
        self._cancelled = False
        self.removed = False

    @property
    def route_id(self) -> str:
        return self.configuration.route_id

    @property
    def outcome(self):
        return self.configuration.outcome

    @property
    def destination(self) -> Any:
        return self.outcome.destination if self.outcome.is_completed else None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Cancel an in-flight route. Returns False if it already finished."""
        if self.outcome.is_done:
            return False
        self._cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()
        # a task cancelled before its first step never reaches _run_route
        self.outcome.mark_failed(asyncio.CancelledError(f'route {self.route_id} cancelled'))
        logger.info(f"[{self.factory.factory_id}] route '{self.route_id}' cancelled")
        return True

    def __repr__(self) -> str:
        return f'<RouteHandle {self.route_id} factory={self.factory.factory_id} stage={self.outcome.stage.value}>'


class RouterFactory(ABC):
    """Shared producer bookkeeping and the synchronous invocation sequence."""

    configuration_class: ClassVar[Type[RouteConfiguration]] = RouteConfiguration

    def __init__(self, factory_id: Optional[str] = None) -> None:
        self.factory_id = factory_id or self.__class__.__name__
        self._producers: List[type] = []

    # ------------------------------------------------------------------ #
    # Producers
    # ------------------------------------------------------------------ #

    def register_producer(self, producer: type) -> None:
        if not isinstance(producer, type):
            raise TypeError(f'Producer must be a class, got {type(producer).__name__}')
        if producer in self._producers:
            logger.debug(f"[{self.factory_id}] producer {producer.__qualname__} already registered")
            return
        self._producers.append(producer)
        logger.debug(f"[{self.factory_id}] registered producer {producer.__qualname__}")

    def enumerate_registered_producers(self) -> Sequence[type]:
        return tuple(self._producers)

    def validate_registered_producers(self, predicate: Callable[[type], bool]) -> Optional[type]:
        for producer in self._producers:
            if not predicate(producer):
                return producer
        return None

    def invalid_producers(self, predicate: Callable[[type], bool]) -> List[type]:
        return [producer for producer in self._producers if not predicate(producer)]

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def can_complete_synchronously(self) -> bool:
        return True

    def default_configuration(self) -> RouteConfiguration:
        return self.configuration_class()

    # ------------------------------------------------------------------ #
    # Invocation
    # ------------------------------------------------------------------ #

    @abstractmethod
    def build_destination(self, configuration: RouteConfiguration) -> Any:
        """Construct the destination object for *configuration*."""
        ...

    def perform_destination(self, destination: Any, configuration: RouteConfiguration) -> None:
        """Hook run between prepare and completion for PERFORM routes."""
        pass

    def _open_route(self, configuration: RouteConfiguration) -> RouteHandle:
        if configuration.route_intent not in configuration.supported_intents:
            raise RoutePerformError(
                f"Route intent '{configuration.route_intent.value}' is not supported by "
                f"{type(configuration).__name__}",
                factory=self,
            )
        logger.debug(f"[{self.factory_id}] invoking route '{configuration.route_id}' "
                     f"(intent={configuration.route_intent.value})")
        return RouteHandle(self, configuration)

    def _deliver(self, destination: Any, configuration: RouteConfiguration) -> None:
        configuration.deliver_prepared(destination)
        if configuration.route_intent is RouteIntent.PERFORM:
            self.perform_destination(destination, configuration)
        configuration.deliver_completed(destination)

    def invoke(self, configuration: RouteConfiguration) -> RouteHandle:
        handle = self._open_route(configuration)
        try:
            destination = self.build_destination(configuration)
        except Exception as exc:
            logger.error(f"[{self.factory_id}] failed to build destination for route "
                         f"'{configuration.route_id}': {exc}")
            configuration.outcome.mark_failed(exc)
            raise
        if destination is None:
            logger.warning(f"[{self.factory_id}] produced no destination for route '{configuration.route_id}'")
            configuration.outcome.mark_failed(RoutePerformError('factory produced no destination', factory=self))
            return handle
        try:
            self._deliver(destination, configuration)
        except Exception as exc:
            logger.error(f"[{self.factory_id}] route '{configuration.route_id}' failed during delivery: {exc}")
            if not configuration.outcome.is_done:
                configuration.outcome.mark_failed(exc)
            raise
        return handle

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.factory_id} producers={len(self._producers)}>'


class ViewRouterFactory(RouterFactory):
    """Factory for the view route family. Supports removal of performed routes."""

    configuration_class: ClassVar[Type[RouteConfiguration]] = ViewRouteConfiguration

    def remove_destination(self, destination: Any, configuration: RouteConfiguration) -> None:
        """Hook tearing down a previously performed destination."""
        pass

    def remove(self, handle: RouteHandle) -> bool:
        if handle.factory is not self:
            raise RoutePerformError('Route handle belongs to another factory', factory=self)
        if handle.removed or not handle.outcome.is_completed:
            logger.debug(f"[{self.factory_id}] nothing to remove for route '{handle.route_id}'")
            return False
        self.remove_destination(handle.destination, handle.configuration)
        handle.removed = True
        logger.info(f"[{self.factory_id}] removed route '{handle.route_id}'")
        return True


class ServiceRouterFactory(RouterFactory):
    """Factory for the service route family."""

    configuration_class: ClassVar[Type[RouteConfiguration]] = ServiceRouteConfiguration


class AsyncRouterFactory:
    """
    Mixin for factories whose ``build_destination`` is a coroutine.

    ``invoke`` schedules the build on the running event loop and returns the
    handle at once; prepare and completion happen on a later loop turn.
    Such factories can never serve a synchronous destination request.
    """

    def can_complete_synchronously(self) -> bool:
        return False

    def invoke(self, configuration: RouteConfiguration) -> RouteHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            error = RoutePerformError(
                f"Async factory needs a running event loop; can't start route '{configuration.route_id}'",
                factory=self,
            )
            configuration.outcome.mark_failed(error)
            raise error from None
        handle = self._open_route(configuration)
        handle.task = loop.create_task(self._run_route(handle))
        return handle

    async def _run_route(self, handle: RouteHandle) -> None:
        configuration = handle.configuration
        try:
            destination = await self.build_destination(configuration)
        except asyncio.CancelledError:
            if not configuration.outcome.is_done:
                configuration.outcome.mark_failed(asyncio.CancelledError(f'route {handle.route_id} cancelled'))
            raise
        except Exception as exc:
            logger.exception("[%s] async route '%s' failed: %s", self.factory_id, handle.route_id, exc)
            configuration.outcome.mark_failed(exc)
            return
        if destination is None:
            logger.warning(f"[{self.factory_id}] produced no destination for route '{handle.route_id}'")
            configuration.outcome.mark_failed(RoutePerformError('factory produced no destination', factory=self))
            return
        try:
            self._deliver(destination, configuration)
        except Exception as exc:
            logger.exception("[%s] async route '%s' failed during delivery: %s", self.factory_id, handle.route_id, exc)
            if not configuration.outcome.is_done:
                configuration.outcome.mark_failed(exc)
