from .route_registry import REGISTRY_FROZEN, ROUTE_REGISTERED, RouteFamily, RouteRegistry, RouteTableKind

__all__ = ['RouteRegistry', 'RouteTableKind', 'RouteFamily', 'ROUTE_REGISTERED', 'REGISTRY_FROZEN']
