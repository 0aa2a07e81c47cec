from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from protoroute.application.router import Router
from protoroute.bootstrap.manifest import apply_manifest, load_manifest
from protoroute.bootstrap.signals import RouteSignalEmitter
from protoroute.bootstrap.validators.integrity_validator import IntegrityValidator
from protoroute.configs.config_loader import ConfigLoader
from protoroute.configs.router_config import RouterConfig
from protoroute.core.exceptions import RouteError
from protoroute.core.registry.route_registry import RouteFamily, RouteRegistry
from protoroute.domain.ports.event_bus_port import EventBusPort
from protoroute.domain.ports.native_resolver_port import NativeResolverPort
from protoroute.infrastructure.event_bus.memory_event_bus import MemoryEventBus

__all__ = ['BootstrapResult', 'Registrar', 'bootstrap_routes', 'bootstrap_routes_sync']

logger = logging.getLogger(__name__)

# Called once with the router during the registration phase.
Registrar = Callable[[Router], Union[None, Awaitable[None]]]


@dataclass
class BootstrapResult:
    run_id: str
    router: Router
    registry: RouteRegistry
    event_bus: EventBusPort
    config: RouterConfig
    validators: Dict[RouteFamily, IntegrityValidator] = field(default_factory=dict)
    registrar_count: int = 0
    manifest_route_count: int = 0
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def binding_count(self) -> int:
        return len(self.registry)

    @property
    def violations(self) -> List[str]:
        return [v for validator in self.validators.values() for v in validator.violations]

    @property
    def success(self) -> bool:
        return self.registry.is_frozen and not self.violations

    def get_summary(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'success': self.success,
            'bindings': self.registry.get_stats()['bindings'],
            'registrars': self.registrar_count,
            'manifest_routes': self.manifest_route_count,
            'violations': self.violations,
            'warnings': list(self.warnings),
            'duration_seconds': round(self.duration_seconds, 4),
        }


async def bootstrap_routes(
    registrars: Sequence[Registrar] = (),
    manifest_paths: Sequence[Union[str, Path]] = (),
    *,
    config: Optional[RouterConfig] = None,
    env: Optional[str] = None,
    config_root: Optional[Union[str, Path]] = None,
    config_overrides: Optional[Dict[str, Any]] = None,
    event_bus: Optional[EventBusPort] = None,
    native_resolver: Optional[NativeResolverPort] = None,
) -> BootstrapResult:
    """
    Drive the registration phase end to end.

    Loads configuration (unless *config* is given), arms one integrity
    validator per route family, runs every registrar, applies the route
    manifests, freezes the registry and announces registration complete for
    views and then services. Routing defects propagate when ``strict_mode``
    is on.
    """
    start = time.perf_counter()
    run_id = f"routes_{time.strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:6]}"
    logger.info(f'=== Route Bootstrap Starting (run_id={run_id}) ===')

    if config is None:
        config = await ConfigLoader(Path(config_root) if config_root else None).load_router_config(
            env, config_overrides)
    logger.info(f'Effective Strict Mode: {config.strict_mode}')

    if event_bus is None:
        event_bus = MemoryEventBus(max_history=config.event_history_size)
    router = Router(native_resolver=native_resolver, event_bus=event_bus, config=config)
    emitter = RouteSignalEmitter(event_bus, run_id)
    result = BootstrapResult(run_id=run_id, router=router, registry=router.registry,
                             event_bus=event_bus, config=config)
    emitter.emit_bootstrap_started()

    if config.validate_on_complete:
        signals = {RouteFamily.VIEW: config.view_complete_signal, RouteFamily.SERVICE: config.service_complete_signal}
        for family, signal_name in signals.items():
            validator = IntegrityValidator(router.registry, event_bus, family,
                                           signal_name=signal_name, strict_mode=config.strict_mode)
            validator.arm()
            result.validators[family] = validator

    for registrar in registrars:
        name = getattr(registrar, '__qualname__', repr(registrar))
        try:
            outcome = registrar(router)
            if inspect.isawaitable(outcome):
                await outcome
        except RouteError:
            raise
        except Exception as e:
            if config.strict_mode:
                raise
            message = f"Registrar '{name}' failed: {e}"
            logger.warning(message)
            result.warnings.append(message)
            emitter.emit_error(type(e).__name__, message)
            continue
        result.registrar_count += 1
        logger.debug(f"Registrar '{name}' completed")

    for manifest_path in manifest_paths:
        manifest = load_manifest(manifest_path)
        applied = apply_manifest(router, manifest, str(manifest_path))
        result.manifest_route_count += applied
        emitter.emit_manifest_applied(str(manifest_path), applied)
        await asyncio.sleep(0)

    router.freeze()

    stats = router.registry.get_stats()['bindings']
    emitter.emit_registration_complete(config.view_complete_signal, RouteFamily.VIEW.value,
                                       stats['view_protocol'] + stats['view_config'])
    emitter.emit_registration_complete(config.service_complete_signal, RouteFamily.SERVICE.value,
                                       stats['service_protocol'] + stats['service_config'])

    result.duration_seconds = time.perf_counter() - start
    emitter.emit_bootstrap_completed(result.binding_count, result.duration_seconds)

    if result.success:
        logger.info(f'✓ Route Bootstrap Complete. Run ID: {run_id}. Bindings: {result.binding_count}.')
    else:
        logger.error(f'✗ Route Bootstrap finished with {len(result.violations)} integrity violation(s). '
                     f'Run ID: {run_id}.')
    return result


def bootstrap_routes_sync(
    registrars: Sequence[Registrar] = (),
    manifest_paths: Sequence[Union[str, Path]] = (),
    **kwargs: Any,
) -> BootstrapResult:
    """Synchronous version of :func:`bootstrap_routes`. Must not be called from a running event loop."""
    logger.debug('Running route bootstrap in synchronous mode')
    return asyncio.run(bootstrap_routes(registrars, manifest_paths, **kwargs))
