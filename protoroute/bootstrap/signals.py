import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from protoroute.configs.router_config import SERVICE_ROUTER_REGISTER_COMPLETE, VIEW_ROUTER_REGISTER_COMPLETE
from protoroute.core.exceptions import RouteError
from protoroute.core.registry.route_registry import REGISTRY_FROZEN, ROUTE_REGISTERED
from protoroute.domain.ports.event_bus_port import EventBusPort

logger = logging.getLogger(__name__)

ROUTE_BOOTSTRAP_STARTED = 'ROUTE_BOOTSTRAP_STARTED'
ROUTE_BOOTSTRAP_COMPLETE = 'ROUTE_BOOTSTRAP_COMPLETE'
ROUTE_MANIFEST_APPLIED = 'ROUTE_MANIFEST_APPLIED'
ROUTE_INTEGRITY_VALIDATED = 'ROUTE_INTEGRITY_VALIDATED'
ROUTE_INTEGRITY_VIOLATION = 'ROUTE_INTEGRITY_VIOLATION'
ROUTE_BOOTSTRAP_ERROR = 'ROUTE_BOOTSTRAP_ERROR'

REGISTRATION_SIGNALS = {ROUTE_REGISTERED, REGISTRY_FROZEN, ROUTE_MANIFEST_APPLIED}
REGISTRATION_COMPLETE_SIGNALS = {VIEW_ROUTER_REGISTER_COMPLETE, SERVICE_ROUTER_REGISTER_COMPLETE}
VALIDATION_SIGNALS = {ROUTE_INTEGRITY_VALIDATED}
LIFECYCLE_SIGNALS = {ROUTE_BOOTSTRAP_STARTED, ROUTE_BOOTSTRAP_COMPLETE}
ERROR_SIGNALS = {ROUTE_INTEGRITY_VIOLATION, ROUTE_BOOTSTRAP_ERROR}
ALL_ROUTE_SIGNALS = (REGISTRATION_SIGNALS | REGISTRATION_COMPLETE_SIGNALS | VALIDATION_SIGNALS
                     | LIFECYCLE_SIGNALS | ERROR_SIGNALS)


def is_error_signal(signal_type: str) -> bool:
    return signal_type in ERROR_SIGNALS


def is_registration_complete_signal(signal_type: str) -> bool:
    return signal_type in REGISTRATION_COMPLETE_SIGNALS


def get_signal_category(signal_type: str) -> str:
    if signal_type in LIFECYCLE_SIGNALS:
        return 'lifecycle'
    elif signal_type in REGISTRATION_SIGNALS:
        return 'registration'
    elif signal_type in REGISTRATION_COMPLETE_SIGNALS:
        return 'registration_complete'
    elif signal_type in VALIDATION_SIGNALS:
        return 'validation'
    elif signal_type in ERROR_SIGNALS:
        return 'error'
    else:
        return 'unknown'


class RouteSignalEmitter:
    """
    Publishes bootstrap milestones on the event bus with run metadata attached.

    Registration-complete signals are published with the caller's payload
    untouched; the integrity validators subscribe to them. A routing defect
    raised by a subscriber propagates to the caller.
    """

    def __init__(self, event_bus: Optional[EventBusPort], run_id: str):
        self.event_bus = event_bus
        self.run_id = run_id
        self.signal_count = 0
        if not event_bus:
            logger.warning('No event bus provided to RouteSignalEmitter - signals will be logged only')
        logger.debug(f'RouteSignalEmitter initialized for run_id: {run_id}')

    def emit_signal(self, signal_type: str, payload: Dict[str, Any]) -> None:
        self.signal_count += 1
        if signal_type not in ALL_ROUTE_SIGNALS:
            logger.debug(f'Custom signal type: {signal_type}')
        enhanced_payload = {
            'signal_type': signal_type,
            'run_id': self.run_id,
            'signal_sequence': self.signal_count,
            'category': get_signal_category(signal_type),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        log_level = logging.ERROR if is_error_signal(signal_type) else logging.DEBUG
        logger.log(log_level, f"Route signal [{signal_type}]: {payload.get('message', '')}")
        if not self.event_bus:
            return
        try:
            self.event_bus.publish(signal_type, enhanced_payload)
        except RouteError:
            raise
        except Exception as e:
            logger.error(f'Failed to emit signal {signal_type}: {e}')

    def emit_bootstrap_started(self) -> None:
        self.emit_signal(ROUTE_BOOTSTRAP_STARTED, {'message': f'Route bootstrap started for run_id: {self.run_id}'})

    def emit_registration_complete(self, signal_type: str, family: str, binding_count: int) -> None:
        self.emit_signal(signal_type, {
            'family': family,
            'binding_count': binding_count,
            'message': f'{family} route registration complete ({binding_count} bindings)',
        })

    def emit_manifest_applied(self, manifest_path: str, entry_count: int) -> None:
        self.emit_signal(ROUTE_MANIFEST_APPLIED, {
            'manifest_path': manifest_path,
            'entry_count': entry_count,
            'message': f'Applied {entry_count} routes from {manifest_path}',
        })

    def emit_bootstrap_completed(self, binding_count: int, duration_seconds: float) -> None:
        self.emit_signal(ROUTE_BOOTSTRAP_COMPLETE, {
            'binding_count': binding_count,
            'duration_seconds': duration_seconds,
            'message': f'Route bootstrap completed with {binding_count} bindings in {duration_seconds:.2f}s',
        })

    def emit_error(self, error_type: str, error_message: str) -> None:
        self.emit_signal(ROUTE_BOOTSTRAP_ERROR, {
            'error_type': error_type,
            'error_message': error_message,
            'message': f'Route bootstrap error: {error_message}',
        })

    def get_signal_stats(self) -> Dict[str, Any]:
        return {
            'total_signals_emitted': self.signal_count,
            'run_id': self.run_id,
            'event_bus_available': self.event_bus is not None,
        }
