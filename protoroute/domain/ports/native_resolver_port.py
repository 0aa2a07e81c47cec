from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from protoroute.core.registry.route_registry import RouteTableKind
    from protoroute.domain.ports.router_factory_port import RouterFactoryPort

# (producer class, capability descriptor) -> conforms?
ConformancePredicate = Callable[[type, Any], bool]


@runtime_checkable
class NativeResolverPort(Protocol):
    """
    Resolver for capabilities registered through the native, runtime-checkable
    protocol path. Consulted only when the declared-capability tables have no
    binding and the capability is native.
    """

    def resolve_native(self, kind: RouteTableKind, capability: Any) -> Optional[RouterFactoryPort]:
        ...
