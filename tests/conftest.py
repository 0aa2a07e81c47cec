# tests/conftest.py
import pytest

from protoroute.application.router import Router
from protoroute.configs.router_config import RouterConfig
from protoroute.core.registry.route_registry import RouteRegistry
from protoroute.infrastructure.event_bus.memory_event_bus import MemoryEventBus
from protoroute.infrastructure.native.native_resolver import NativeRouteResolver


@pytest.fixture
def event_bus():
    return MemoryEventBus(component_id='test_bus', max_history=100)


@pytest.fixture
def registry(event_bus):
    return RouteRegistry(event_bus=event_bus)


@pytest.fixture
def native_resolver():
    return NativeRouteResolver()


@pytest.fixture
def router(event_bus, native_resolver):
    return Router(native_resolver=native_resolver, event_bus=event_bus, config=RouterConfig())


@pytest.fixture
def lenient_router(event_bus):
    return Router(event_bus=event_bus, config=RouterConfig(strict_mode=False))
