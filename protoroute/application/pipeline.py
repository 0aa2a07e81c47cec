from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Type, TypeVar

from protoroute.application.discovery import RouteDiscovery
from protoroute.configs.router_config import RouterConfig
from protoroute.core.capability import capability_tag, satisfies
from protoroute.core.exceptions import (
    DestinationTypeError,
    IncompleteRouteError,
    RouteError,
    SynchronousCompletionError,
    UnregisteredCapabilityError,
)
from protoroute.core.registry.route_registry import RouteTableKind
from protoroute.domain.configuration import RouteConfiguration, RouteIntent
from protoroute.factories.router_factory import RouteHandle, RouterFactory

__all__ = ['RoutePipeline', 'RouteOption']

logger = logging.getLogger(__name__)

T = TypeVar('T')
C = TypeVar('C')

RouteOption = Callable[[RouteConfiguration], None]


class RoutePipeline:
    """
    resolve -> build configuration -> invoke factory -> route callbacks.

    ``perform`` starts a route and hands back the live :class:`RouteHandle`;
    the route may finish on a later event-loop turn. ``make_destination``
    asks a synchronous factory for the destination object itself and returns
    it once the factory has completed inside the call.
    """

    def __init__(self, discovery: RouteDiscovery, config: Optional[RouterConfig] = None):
        self.discovery = discovery
        self.config = config or RouterConfig()

    @property
    def strict_mode(self) -> bool:
        return self.config.strict_mode

    # ------------------------------------------------------------------ #
    # Perform
    # ------------------------------------------------------------------ #

    def perform(self, kind: RouteTableKind, capability: Any, option: Optional[RouteOption] = None,
                prepare: Optional[Callable[[Any], None]] = None) -> Optional[RouteHandle]:
        kind = RouteTableKind(kind)
        factory = self.discovery.resolve(kind, capability)
        if factory is None:
            logger.info(f"No {kind.value} route for '{_label(capability)}'; nothing performed")
            return None

        config = factory.default_configuration()
        if option is not None:
            option(config)

        if kind.is_config:
            if prepare is not None and satisfies(config, capability):
                prepare(config)
        elif prepare is not None:
            config.prepare_destination = _typed_prepare(config.prepare_destination, capability, prepare)

        logger.debug(f"Performing {kind.value} '{_label(capability)}' via {factory.factory_id} "
                     f"(route_id={config.route_id})")
        try:
            return factory.invoke(config)
        except RouteError as exc:
            return self._defect(exc)

    def perform_view_protocol(self, view_protocol: Type[T], option: Optional[RouteOption] = None,
                              prepare: Optional[Callable[[T], None]] = None) -> Optional[RouteHandle]:
        return self.perform(RouteTableKind.VIEW_PROTOCOL, view_protocol, option, prepare)

    def perform_view_config(self, config_protocol: Type[C], option: Optional[RouteOption] = None,
                            prepare: Optional[Callable[[C], None]] = None) -> Optional[RouteHandle]:
        return self.perform(RouteTableKind.VIEW_CONFIG, config_protocol, option, prepare)

    def perform_service_protocol(self, service_protocol: Type[T], option: Optional[RouteOption] = None,
                                 prepare: Optional[Callable[[T], None]] = None) -> Optional[RouteHandle]:
        return self.perform(RouteTableKind.SERVICE_PROTOCOL, service_protocol, option, prepare)

    def perform_service_config(self, config_protocol: Type[C], option: Optional[RouteOption] = None,
                               prepare: Optional[Callable[[C], None]] = None) -> Optional[RouteHandle]:
        return self.perform(RouteTableKind.SERVICE_CONFIG, config_protocol, option, prepare)

    # ------------------------------------------------------------------ #
    # Synchronous destinations
    # ------------------------------------------------------------------ #

    def make_destination(self, kind: RouteTableKind, capability: Type[T],
                         prepare: Optional[Callable[[T], None]] = None) -> Optional[T]:
        """
        Build a destination satisfying *capability* synchronously.

        The factory must be registered and able to complete within this call.
        The destination is checked against *capability* before it is prepared
        or returned.
        """
        kind = RouteTableKind(kind)
        if kind.is_config:
            return self.make_destination_for_config(kind, capability, prepare)

        factory = self._synchronous_factory(kind, capability)
        if factory is None:
            return None

        config = factory.default_configuration()
        config.route_intent = RouteIntent.GET_DESTINATION
        previous = config.prepare_destination

        # a non-conforming destination fails the route before it can complete
        def prepare_destination(destination: Any) -> None:
            if not satisfies(destination, capability):
                raise DestinationTypeError(
                    f"Bad factory implementation: destination {type(destination).__name__} "
                    f"does not satisfy the requested capability",
                    capability=capability, factory=factory, table=kind.value, destination=destination,
                )
            if previous is not None:
                previous(destination)
            if prepare is not None:
                prepare(destination)

        captured: List[T] = []
        config.prepare_destination = prepare_destination
        config.route_completion = captured.append
        return self._invoke_synchronously(kind, capability, factory, config, captured)

    def make_destination_for_config(self, kind: RouteTableKind, config_protocol: Type[C],
                                    prepare: Optional[Callable[[C], None]] = None) -> Any:
        """Config-keyed variant: *prepare* receives the configuration, the result is unchecked."""
        kind = RouteTableKind(kind)
        factory = self._synchronous_factory(kind, config_protocol)
        if factory is None:
            return None

        config = factory.default_configuration()
        config.route_intent = RouteIntent.GET_DESTINATION
        if prepare is not None and satisfies(config, config_protocol):
            prepare(config)

        captured: List[Any] = []
        config.route_completion = captured.append
        return self._invoke_synchronously(kind, config_protocol, factory, config, captured)

    def make_view_destination(self, view_protocol: Type[T],
                              prepare: Optional[Callable[[T], None]] = None) -> Optional[T]:
        return self.make_destination(RouteTableKind.VIEW_PROTOCOL, view_protocol, prepare)

    def make_view_destination_for_config(self, config_protocol: Type[C],
                                         prepare: Optional[Callable[[C], None]] = None) -> Any:
        return self.make_destination_for_config(RouteTableKind.VIEW_CONFIG, config_protocol, prepare)

    def make_service_destination(self, service_protocol: Type[T],
                                 prepare: Optional[Callable[[T], None]] = None) -> Optional[T]:
        return self.make_destination(RouteTableKind.SERVICE_PROTOCOL, service_protocol, prepare)

    def make_service_destination_for_config(self, config_protocol: Type[C],
                                            prepare: Optional[Callable[[C], None]] = None) -> Any:
        return self.make_destination_for_config(RouteTableKind.SERVICE_CONFIG, config_protocol, prepare)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _synchronous_factory(self, kind: RouteTableKind, capability: Any) -> Optional[RouterFactory]:
        factory = self.discovery.resolve(kind, capability)
        if factory is None:
            return self._defect(UnregisteredCapabilityError(
                "No factory registered; a destination can't be made for an unregistered capability",
                capability=capability, table=kind.value,
            ))
        if not factory.can_complete_synchronously():
            return self._defect(SynchronousCompletionError(
                "Factory can't get the destination synchronously",
                capability=capability, factory=factory, table=kind.value,
            ))
        return factory

    def _invoke_synchronously(self, kind: RouteTableKind, capability: Any, factory: RouterFactory,
                              config: RouteConfiguration, captured: List[Any]) -> Any:
        try:
            factory.invoke(config)
        except RouteError as exc:
            return self._defect(exc)

        if captured:
            logger.debug(f"Made {kind.value} destination for '{_label(capability)}' via {factory.factory_id}")
            return captured[0]

        if self.config.require_completion and not config.outcome.is_completed:
            return self._defect(IncompleteRouteError(
                f"Factory returned without completing route '{config.route_id}'",
                capability=capability, factory=factory, table=kind.value,
            ))
        logger.warning(f"{factory.factory_id} returned no destination for '{_label(capability)}' "
                       f"(stage={config.outcome.stage.value})")
        return None

    def _defect(self, exc: RouteError) -> None:
        if self.strict_mode:
            raise exc
        logger.error(f"Routing defect ignored (strict_mode disabled): {exc}")
        return None


def _typed_prepare(previous: Optional[Callable[[Any], None]], capability: Any,
                   prepare: Callable[[Any], None]) -> Callable[[Any], None]:
    def prepare_destination(destination: Any) -> None:
        if previous is not None:
            previous(destination)
        if satisfies(destination, capability):
            prepare(destination)
        else:
            logger.debug(f"Skipping prepare: {type(destination).__name__} does not satisfy "
                         f"'{_label(capability)}'")

    return prepare_destination


def _label(capability: Any) -> str:
    try:
        return capability_tag(capability)
    except TypeError:
        return repr(capability)
