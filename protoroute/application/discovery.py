from __future__ import annotations

import logging
from typing import Any, Optional

from protoroute.core.capability import is_native_capability
from protoroute.core.registry.route_registry import RouteRegistry, RouteTableKind
from protoroute.domain.ports.native_resolver_port import NativeResolverPort
from protoroute.factories.router_factory import RouterFactory

logger = logging.getLogger(__name__)


class RouteDiscovery:
    """
    Finds the factory for a capability.

    Declared bindings in the registry win. Only when a table has no binding and
    the capability is native does the native resolver get asked; a declared
    capability with no binding is simply unresolved.
    """

    def __init__(self, registry: RouteRegistry, native_resolver: Optional[NativeResolverPort] = None):
        self.registry = registry
        self.native_resolver = native_resolver

    def resolve(self, kind: RouteTableKind, capability: Any) -> Optional[RouterFactory]:
        kind = RouteTableKind(kind)
        factory = self.registry.lookup(kind, capability)
        if factory is not None:
            return factory
        if self.native_resolver is not None and is_native_capability(capability):
            factory = self.native_resolver.resolve_native(kind, capability)
            logger.debug(f"Native fallback for {kind.value} '{capability.__qualname__}': "
                         f"{getattr(factory, 'factory_id', None)}")
            return factory
        logger.debug(f"No factory for {kind.value} '{getattr(capability, '__qualname__', capability)}'")
        return None

    def router_for_view_protocol(self, view_protocol: Any) -> Optional[RouterFactory]:
        return self.resolve(RouteTableKind.VIEW_PROTOCOL, view_protocol)

    def router_for_view_config(self, config_protocol: Any) -> Optional[RouterFactory]:
        return self.resolve(RouteTableKind.VIEW_CONFIG, config_protocol)

    def router_for_service_protocol(self, service_protocol: Any) -> Optional[RouterFactory]:
        return self.resolve(RouteTableKind.SERVICE_PROTOCOL, service_protocol)

    def router_for_service_config(self, config_protocol: Any) -> Optional[RouterFactory]:
        return self.resolve(RouteTableKind.SERVICE_CONFIG, config_protocol)
