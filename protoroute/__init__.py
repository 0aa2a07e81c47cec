"""protoroute - typed capability routing: register factories by protocol, resolve destinations by protocol."""
from protoroute.core.capability import CapabilityKey, capability, conforms_to, satisfies
from protoroute.core.registry import RouteFamily, RouteRegistry, RouteTableKind
from protoroute.core.results import RouteOutcome, RouteStage
from protoroute.domain.configuration import (
    RouteConfiguration,
    RouteIntent,
    ServiceRouteConfiguration,
    ViewRouteConfiguration,
)
from protoroute.factories.router_factory import (
    AsyncRouterFactory,
    RouteHandle,
    RouterFactory,
    ServiceRouterFactory,
    ViewRouterFactory,
)
from protoroute.application.discovery import RouteDiscovery
from protoroute.application.pipeline import RoutePipeline
from protoroute.application.router import Router
from protoroute.configs import RouterConfig
from protoroute.infrastructure.event_bus.memory_event_bus import MemoryEventBus
from protoroute.infrastructure.native.native_resolver import NativeRouteResolver
from protoroute.bootstrap import BootstrapResult, IntegrityValidator, bootstrap_routes, bootstrap_routes_sync

__version__ = '0.1.0'

__all__ = [
    'CapabilityKey', 'capability', 'conforms_to', 'satisfies',
    'RouteFamily', 'RouteRegistry', 'RouteTableKind',
    'RouteOutcome', 'RouteStage',
    'RouteConfiguration', 'RouteIntent', 'ServiceRouteConfiguration', 'ViewRouteConfiguration',
    'AsyncRouterFactory', 'RouteHandle', 'RouterFactory', 'ServiceRouterFactory', 'ViewRouterFactory',
    'RouteDiscovery', 'RoutePipeline', 'Router', 'RouterConfig',
    'MemoryEventBus', 'NativeRouteResolver',
    'BootstrapResult', 'IntegrityValidator', 'bootstrap_routes', 'bootstrap_routes_sync',
    '__version__',
]
