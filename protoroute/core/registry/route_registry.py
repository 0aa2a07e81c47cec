import logging
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from protoroute.core.capability import CapabilityKey, is_native_capability, satisfies
from protoroute.core.exceptions import (
    ConfigurationCapabilityError,
    DuplicateRegistrationError,
    FactoryKindError,
    InvalidCapabilityError,
    NativeCapabilityError,
    RegistrationClosedError,
    RegistrationError,
)
from protoroute.domain.ports.event_bus_port import EventBusPort
from protoroute.factories.router_factory import RouterFactory, ServiceRouterFactory, ViewRouterFactory

logger = logging.getLogger(__name__)

ROUTE_REGISTERED = 'ROUTE_REGISTERED'
REGISTRY_FROZEN = 'REGISTRY_FROZEN'


class RouteFamily(str, Enum):
    VIEW = 'view'
    SERVICE = 'service'

    @property
    def factory_base(self) -> Type[RouterFactory]:
        return ViewRouterFactory if self is RouteFamily.VIEW else ServiceRouterFactory


class RouteTableKind(str, Enum):
    VIEW_PROTOCOL = 'view_protocol'
    VIEW_CONFIG = 'view_config'
    SERVICE_PROTOCOL = 'service_protocol'
    SERVICE_CONFIG = 'service_config'

    @property
    def family(self) -> RouteFamily:
        return RouteFamily.VIEW if self.value.startswith('view') else RouteFamily.SERVICE

    @property
    def is_config(self) -> bool:
        return self.value.endswith('_config')

    @classmethod
    def destination_table(cls, family: RouteFamily) -> 'RouteTableKind':
        return cls.VIEW_PROTOCOL if family is RouteFamily.VIEW else cls.SERVICE_PROTOCOL


class RouteRegistry:
    """
    The four capability tables: {view, service} x {destination, configuration}.

    Lifecycle is construct -> register -> ``freeze()`` -> read-only. A
    capability is bound at most once per table and bindings are never
    removed. Every violation is a defect; with ``strict_mode`` off it is
    logged and the registration is skipped instead of raised.
    """

    def __init__(self, event_bus: Optional[EventBusPort] = None, strict_mode: bool = True):
        self._tables: Dict[RouteTableKind, Dict[CapabilityKey, RouterFactory]] = {
            kind: {} for kind in RouteTableKind
        }
        self._registration_order: List[Tuple[RouteTableKind, CapabilityKey]] = []
        self._event_bus = event_bus
        self._frozen = False
        self._frozen_at: Optional[datetime] = None
        self.strict_mode = strict_mode
        logger.info("RouteRegistry initialized")

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def frozen_at(self) -> Optional[datetime]:
        return self._frozen_at

    def freeze(self) -> None:
        """Close the registration phase. One-way; later calls are no-ops."""
        if self._frozen:
            logger.debug("RouteRegistry already frozen")
            return
        self._frozen = True
        self._frozen_at = datetime.now(timezone.utc)
        logger.info(f"✓ RouteRegistry frozen with {len(self)} bindings")
        self._publish(REGISTRY_FROZEN, {
            'bindings': {kind.value: len(table) for kind, table in self._tables.items()},
            'timestamp': self._frozen_at.isoformat(),
        })

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, kind: RouteTableKind, capability: Any, factory: RouterFactory) -> None:
        kind = RouteTableKind(kind)
        try:
            key = self._check_registration(kind, capability, factory)
        except RegistrationError as exc:
            if self.strict_mode:
                raise
            logger.error(f"Registration skipped: {exc}")
            return

        self._tables[kind][key] = factory
        self._registration_order.append((kind, key))
        logger.debug(f"Registered {kind.value} '{key.tag}' -> {factory.factory_id}")
        self._publish(ROUTE_REGISTERED, {
            'table': kind.value,
            'capability': key.tag,
            'factory': factory.factory_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })

    def register_view_protocol(self, view_protocol: Any, factory: RouterFactory) -> None:
        self.register(RouteTableKind.VIEW_PROTOCOL, view_protocol, factory)

    def register_view_config(self, config_protocol: Any, factory: RouterFactory) -> None:
        self.register(RouteTableKind.VIEW_CONFIG, config_protocol, factory)

    def register_service_protocol(self, service_protocol: Any, factory: RouterFactory) -> None:
        self.register(RouteTableKind.SERVICE_PROTOCOL, service_protocol, factory)

    def register_service_config(self, config_protocol: Any, factory: RouterFactory) -> None:
        self.register(RouteTableKind.SERVICE_CONFIG, config_protocol, factory)

    def _check_registration(self, kind: RouteTableKind, capability: Any, factory: Any) -> CapabilityKey:
        table = kind.value
        if self._frozen:
            raise RegistrationClosedError(
                "Can't register after the registration phase finished; register from a route registrar",
                capability=capability, factory=factory, table=table,
            )
        if is_native_capability(capability):
            raise NativeCapabilityError(
                "Runtime-checkable protocols are native capabilities; register them with the native resolver",
                capability=capability, factory=factory, table=table,
            )
        expected_base = kind.family.factory_base
        if not isinstance(factory, expected_base):
            raise FactoryKindError(
                f"Factory must be an instance of {expected_base.__name__}",
                capability=capability, factory=factory, table=table,
            )
        try:
            key = CapabilityKey.for_descriptor(capability)
        except TypeError as exc:
            raise InvalidCapabilityError(
                f"Capability must be a class: {exc}",
                capability=capability, factory=factory, table=table,
            ) from exc
        if kind.is_config:
            default_config = factory.default_configuration()
            if not satisfies(default_config, capability):
                raise ConfigurationCapabilityError(
                    f"Default configuration {type(default_config).__name__} must conform to "
                    f"the config capability to register",
                    capability=capability, factory=factory, table=table,
                )
        existing = self._tables[kind].get(key)
        if existing is not None:
            raise DuplicateRegistrationError(
                f"Capability '{key.tag}' was already registered with factory '{existing.factory_id}'",
                capability=capability, factory=factory, table=table, existing_factory=existing,
            )
        return key

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def lookup(self, kind: RouteTableKind, capability: Any) -> Optional[RouterFactory]:
        return self._tables[RouteTableKind(kind)].get(CapabilityKey.for_descriptor(capability))

    def table(self, kind: RouteTableKind) -> Mapping[CapabilityKey, RouterFactory]:
        """Read-only view of one table."""
        return MappingProxyType(self._tables[RouteTableKind(kind)])

    def bindings(self, kind: RouteTableKind) -> List[Tuple[CapabilityKey, RouterFactory]]:
        return list(self._tables[RouteTableKind(kind)].items())

    def is_registered(self, kind: RouteTableKind, capability: Any) -> bool:
        return self.lookup(kind, capability) is not None

    def get_registration_order(self) -> List[Tuple[RouteTableKind, CapabilityKey]]:
        return list(self._registration_order)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'frozen': self._frozen,
            'frozen_at': self._frozen_at.isoformat() if self._frozen_at else None,
            'bindings': {kind.value: len(table) for kind, table in self._tables.items()},
        }

    def _publish(self, signal_name: str, payload: Dict[str, Any]) -> None:
        if self._event_bus is None:
            return
        try:
            self._event_bus.publish(signal_name, payload)
        except Exception as e:
            logger.warning(f"Failed to publish {signal_name} event: {e}")

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())

    def __contains__(self, item: Tuple[RouteTableKind, Any]) -> bool:
        kind, capability = item
        return self.is_registered(kind, capability)
