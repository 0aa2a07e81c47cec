from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from protoroute.core.capability import CapabilityKey, conforms_to, is_native_capability
from protoroute.core.exceptions import DuplicateRegistrationError, NativeCapabilityError
from protoroute.core.registry.route_registry import RouteTableKind
from protoroute.domain.ports.native_resolver_port import ConformancePredicate
from protoroute.factories.router_factory import RouterFactory

logger = logging.getLogger(__name__)


class NativeRouteResolver:
    """
    In-memory registration path for native (``@runtime_checkable``) capabilities.

    Only the exact binding resolves by default, so a native capability nobody
    registered comes back absent. With ``match_by_conformance`` enabled, an
    unbound protocol falls back to the first factory in the same table whose
    producers all conform to it (for configuration tables, whose default
    configuration conforms).
    """

    def __init__(self, conformance: ConformancePredicate = conforms_to, match_by_conformance: bool = False) -> None:
        self._conformance = conformance
        self.match_by_conformance = match_by_conformance
        self._tables: Dict[RouteTableKind, Dict[CapabilityKey, RouterFactory]] = {
            kind: {} for kind in RouteTableKind
        }
        logger.debug("NativeRouteResolver initialized")

    def register_native(self, kind: RouteTableKind, capability: Any, factory: RouterFactory) -> None:
        kind = RouteTableKind(kind)
        if not is_native_capability(capability):
            raise NativeCapabilityError(
                "Only runtime-checkable protocols can be registered through the native path",
                capability=capability, factory=factory, table=kind.value,
            )
        key = CapabilityKey.for_descriptor(capability)
        existing = self._tables[kind].get(key)
        if existing is not None:
            raise DuplicateRegistrationError(
                f"Native capability '{key.tag}' was already registered with factory '{existing.factory_id}'",
                capability=capability, factory=factory, table=kind.value, existing_factory=existing,
            )
        self._tables[kind][key] = factory
        logger.debug(f"Registered native {kind.value} '{key.tag}' -> {factory.factory_id}")

    def resolve_native(self, kind: RouteTableKind, capability: Any) -> Optional[RouterFactory]:
        kind = RouteTableKind(kind)
        table = self._tables[kind]
        factory = table.get(CapabilityKey.for_descriptor(capability))
        if factory is not None or not self.match_by_conformance:
            return factory

        for candidate in self._unique_factories(kind):
            if self._factory_conforms(kind, candidate, capability):
                logger.debug(f"Native {kind.value} '{capability.__qualname__}' matched "
                             f"{candidate.factory_id} by conformance")
                return candidate
        return None

    def _unique_factories(self, kind: RouteTableKind) -> List[RouterFactory]:
        seen: List[RouterFactory] = []
        for factory in self._tables[kind].values():
            if not any(factory is known for known in seen):
                seen.append(factory)
        return seen

    def _factory_conforms(self, kind: RouteTableKind, factory: RouterFactory, capability: Any) -> bool:
        if kind.is_config:
            return self._conformance(type(factory.default_configuration()), capability)
        producers = factory.enumerate_registered_producers()
        return bool(producers) and all(self._conformance(producer, capability) for producer in producers)
