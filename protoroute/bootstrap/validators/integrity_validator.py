from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional

from protoroute.bootstrap.signals import ROUTE_INTEGRITY_VALIDATED, ROUTE_INTEGRITY_VIOLATION
from protoroute.configs.router_config import SERVICE_ROUTER_REGISTER_COMPLETE, VIEW_ROUTER_REGISTER_COMPLETE
from protoroute.core.capability import conforms_to
from protoroute.core.exceptions import IntegrityViolationError
from protoroute.core.registry.route_registry import RouteFamily, RouteRegistry, RouteTableKind
from protoroute.domain.ports.event_bus_port import EventBusPort
from protoroute.domain.ports.native_resolver_port import ConformancePredicate

__all__ = ['IntegrityValidator', 'ValidatorState', 'default_signal_for']

logger = logging.getLogger(__name__)


class ValidatorState(str, Enum):
    ARMED = 'armed'
    FIRED = 'fired'


def default_signal_for(family: RouteFamily) -> str:
    return VIEW_ROUTER_REGISTER_COMPLETE if RouteFamily(family) is RouteFamily.VIEW else SERVICE_ROUTER_REGISTER_COMPLETE


class IntegrityValidator:
    """
    Deferred, one-shot check that every producer class a factory registered
    conforms to the capability the factory is bound under.

    ``arm()`` subscribes to the family's registration-complete signal. The
    first delivery unsubscribes and then scans the family's destination
    table; later deliveries do nothing. Violations raise
    :class:`IntegrityViolationError` listing all of them, or are logged when
    ``strict_mode`` is off.
    """

    def __init__(self, registry: RouteRegistry, event_bus: Optional[EventBusPort], family: RouteFamily,
                 conformance: ConformancePredicate = conforms_to, signal_name: Optional[str] = None,
                 strict_mode: bool = True):
        self.registry = registry
        self.event_bus = event_bus
        self.family = RouteFamily(family)
        self.conformance = conformance
        self.signal_name = signal_name or default_signal_for(self.family)
        self.strict_mode = strict_mode
        self.state: Optional[ValidatorState] = None
        self.scan_count = 0
        self.violations: List[str] = []
        logger.info(f'IntegrityValidator initialized for {self.family.value} routes (signal={self.signal_name}).')

    @property
    def is_armed(self) -> bool:
        return self.state is ValidatorState.ARMED

    @property
    def has_fired(self) -> bool:
        return self.state is ValidatorState.FIRED

    def arm(self) -> None:
        if self.state is not None:
            logger.debug(f'[{self.family.value}] validator already {self.state.value}; arm() ignored')
            return
        if self.event_bus is None:
            raise ValueError('IntegrityValidator requires an event bus to arm.')
        self.event_bus.subscribe(self.signal_name, self._on_registration_complete)
        self.state = ValidatorState.ARMED
        logger.debug(f'[{self.family.value}] validator armed on {self.signal_name}')

    def _on_registration_complete(self, payload: Any = None) -> None:
        if self.state is not ValidatorState.ARMED:
            return
        # latch before scanning so a re-entrant delivery can't scan twice
        self.event_bus.unsubscribe(self.signal_name, self._on_registration_complete)
        self.state = ValidatorState.FIRED
        logger.info(f'[{self.family.value}] registration complete; validating registered producers')
        self.validate()

    def validate(self) -> List[str]:
        """Scan the family's destination table. Returns the violations found."""
        kind = RouteTableKind.destination_table(self.family)
        errors: List[str] = []

        for key, factory in self.registry.bindings(kind):
            descriptor = key.descriptor
            for producer in factory.enumerate_registered_producers():
                if self._conforms(producer, descriptor):
                    continue
                errors.append(
                    f"Registered class {producer.__qualname__} for factory '{factory.factory_id}' "
                    f"should conform to '{key.tag}'"
                )

        self.scan_count += 1
        self.violations = errors

        if not errors:
            logger.info(f'✓ {self.family.value} route integrity validated '
                        f'({len(self.registry.table(kind))} bindings)')
            self._publish(ROUTE_INTEGRITY_VALIDATED, {'family': self.family.value, 'violations': []})
            return errors

        logger.error(f'[{self.family.value}] route integrity failed with {len(errors)} violation(s): {errors}')
        self._publish(ROUTE_INTEGRITY_VIOLATION, {'family': self.family.value, 'violations': list(errors)})
        if self.strict_mode:
            raise IntegrityViolationError(
                f'{len(errors)} registered {self.family.value} producer(s) do not conform to their capability',
                validation_errors=errors,
                table=kind.value,
            )
        return errors

    def _conforms(self, producer: type, descriptor: Any) -> bool:
        try:
            return bool(self.conformance(producer, descriptor))
        except Exception as exc:
            logger.warning(f'Conformance check for {producer!r} raised: {exc}')
            return False

    def _publish(self, signal_name: str, payload: dict) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(signal_name, payload)

    def __repr__(self) -> str:
        state = self.state.value if self.state else 'idle'
        return f'<IntegrityValidator {self.family.value} state={state} scans={self.scan_count}>'
