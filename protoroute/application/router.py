from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Type, TypeVar

from protoroute.application.discovery import RouteDiscovery
from protoroute.application.pipeline import RouteOption, RoutePipeline
from protoroute.configs.router_config import RouterConfig
from protoroute.core.registry.route_registry import RouteRegistry
from protoroute.domain.ports.event_bus_port import EventBusPort
from protoroute.domain.ports.native_resolver_port import NativeResolverPort
from protoroute.factories.router_factory import RouteHandle, RouterFactory

__all__ = ['Router']

logger = logging.getLogger(__name__)

T = TypeVar('T')
C = TypeVar('C')


class Router:
    """
    Single entry point over registry, discovery and pipeline.

    Registration goes through the ``register_*`` methods until ``freeze()``;
    afterwards callers use ``router_for_*``, ``perform_*`` and ``make_*``.
    """

    def __init__(self, registry: Optional[RouteRegistry] = None,
                 native_resolver: Optional[NativeResolverPort] = None,
                 event_bus: Optional[EventBusPort] = None,
                 config: Optional[RouterConfig] = None):
        self.config = config or RouterConfig()
        self.event_bus = event_bus
        if registry is None:
            registry_bus = event_bus if self.config.publish_registration_events else None
            registry = RouteRegistry(event_bus=registry_bus, strict_mode=self.config.strict_mode)
        self.registry = registry
        self.native_resolver = native_resolver
        self.discovery = RouteDiscovery(registry, native_resolver)
        self.pipeline = RoutePipeline(self.discovery, self.config)
        logger.debug(f"Router created (strict_mode={self.config.strict_mode}, "
                     f"native_fallback={native_resolver is not None})")

    @property
    def is_frozen(self) -> bool:
        return self.registry.is_frozen

    def freeze(self) -> None:
        self.registry.freeze()

    # Registration

    def register_view_protocol(self, view_protocol: Any, factory: RouterFactory) -> None:
        self.registry.register_view_protocol(view_protocol, factory)

    def register_view_config(self, config_protocol: Any, factory: RouterFactory) -> None:
        self.registry.register_view_config(config_protocol, factory)

    def register_service_protocol(self, service_protocol: Any, factory: RouterFactory) -> None:
        self.registry.register_service_protocol(service_protocol, factory)

    def register_service_config(self, config_protocol: Any, factory: RouterFactory) -> None:
        self.registry.register_service_config(config_protocol, factory)

    # Discovery

    def router_for_view_protocol(self, view_protocol: Any) -> Optional[RouterFactory]:
        return self.discovery.router_for_view_protocol(view_protocol)

    def router_for_view_config(self, config_protocol: Any) -> Optional[RouterFactory]:
        return self.discovery.router_for_view_config(config_protocol)

    def router_for_service_protocol(self, service_protocol: Any) -> Optional[RouterFactory]:
        return self.discovery.router_for_service_protocol(service_protocol)

    def router_for_service_config(self, config_protocol: Any) -> Optional[RouterFactory]:
        return self.discovery.router_for_service_config(config_protocol)

    # Perform

    def perform_view_protocol(self, view_protocol: Type[T], option: Optional[RouteOption] = None,
                              prepare: Optional[Callable[[T], None]] = None) -> Optional[RouteHandle]:
        return self.pipeline.perform_view_protocol(view_protocol, option, prepare)

    def perform_view_config(self, config_protocol: Type[C], option: Optional[RouteOption] = None,
                            prepare: Optional[Callable[[C], None]] = None) -> Optional[RouteHandle]:
        return self.pipeline.perform_view_config(config_protocol, option, prepare)

    def perform_service_protocol(self, service_protocol: Type[T], option: Optional[RouteOption] = None,
                                 prepare: Optional[Callable[[T], None]] = None) -> Optional[RouteHandle]:
        return self.pipeline.perform_service_protocol(service_protocol, option, prepare)

    def perform_service_config(self, config_protocol: Type[C], option: Optional[RouteOption] = None,
                               prepare: Optional[Callable[[C], None]] = None) -> Optional[RouteHandle]:
        return self.pipeline.perform_service_config(config_protocol, option, prepare)

    # Destinations

    def make_view_destination(self, view_protocol: Type[T],
                              prepare: Optional[Callable[[T], None]] = None) -> Optional[T]:
        return self.pipeline.make_view_destination(view_protocol, prepare)

    def make_view_destination_for_config(self, config_protocol: Type[C],
                                         prepare: Optional[Callable[[C], None]] = None) -> Any:
        return self.pipeline.make_view_destination_for_config(config_protocol, prepare)

    def make_service_destination(self, service_protocol: Type[T],
                                 prepare: Optional[Callable[[T], None]] = None) -> Optional[T]:
        return self.pipeline.make_service_destination(service_protocol, prepare)

    def make_service_destination_for_config(self, config_protocol: Type[C],
                                            prepare: Optional[Callable[[C], None]] = None) -> Any:
        return self.pipeline.make_service_destination_for_config(config_protocol, prepare)

    def __repr__(self) -> str:
        return f'<Router bindings={len(self.registry)} frozen={self.registry.is_frozen}>'
