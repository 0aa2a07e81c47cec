"""
Route manifests
───────────────
YAML documents declaring bindings instead of registering them in code::

    version: "1.0"
    routes:
      - table: service_protocol
        capability: myapp.services:Greeter
        factory: myapp.factories:GreeterFactory
        producers:
          - myapp.services:EnglishGreeter

``capability``, ``factory`` and ``producers`` are import paths
(``pkg.mod:Name`` or ``pkg.mod.Name``). A factory path naming a class is
instantiated with no arguments; one naming an instance is used as-is.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from protoroute.core.exceptions import ManifestProcessingError
from protoroute.core.registry.route_registry import RouteTableKind

if TYPE_CHECKING:
    from protoroute.application.router import Router

__all__ = ['RouteEntry', 'RouteManifest', 'import_by_path', 'load_manifest', 'apply_manifest']

logger = logging.getLogger(__name__)


def import_by_path(path: str) -> Any:
    if not isinstance(path, str):
        raise TypeError(f'Import path must be a string, got {type(path)}')
    if ':' in path:
        module_name, attr_name = path.split(':', 1)
    elif '.' in path:
        module_name, attr_name = path.rsplit('.', 1)
    else:
        raise ValueError(f"Import path '{path}' is ambiguous. Use 'pkg.mod:Class' or 'pkg.mod.Class'.")

    if not module_name or not attr_name:
        raise ValueError(f'Invalid import path format: {path}. Could not determine module and attribute.')

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(f"Could not import module '{module_name}': {e}") from e
    try:
        attribute = module
        for part in attr_name.split('.'):
            attribute = getattr(attribute, part)
    except AttributeError as e:
        raise AttributeError(f"Attribute '{attr_name}' not found in module '{module_name}': {e}") from e
    logger.debug(f"Imported '{attr_name}' from module '{module_name}'.")
    return attribute


class RouteEntry(BaseModel):
    model_config = ConfigDict(extra='forbid')

    table: RouteTableKind
    capability: str = Field(..., min_length=1)
    factory: str = Field(..., min_length=1)
    producers: List[str] = Field(default_factory=list)
    enabled: bool = True
    description: Optional[str] = None

    @field_validator('table', mode='before')
    @classmethod
    def _normalize_table(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator('producers', mode='before')
    @classmethod
    def _normalize_producers(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class RouteManifest(BaseModel):
    version: str = '1.0'
    metadata: Dict[str, Any] = Field(default_factory=dict)
    routes: List[RouteEntry] = Field(default_factory=list)

    @property
    def enabled_routes(self) -> List[RouteEntry]:
        return [entry for entry in self.routes if entry.enabled]


def load_manifest(path: Union[str, Path]) -> RouteManifest:
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ManifestProcessingError(f'Cannot read route manifest: {e}', manifest_path=str(manifest_path)) from e

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ManifestProcessingError(f'Malformed YAML: {e}', manifest_path=str(manifest_path)) from e

    if not isinstance(data, dict):
        raise ManifestProcessingError('Route manifest must contain a top-level mapping',
                                      manifest_path=str(manifest_path))

    try:
        manifest = RouteManifest.model_validate(data)
    except ValidationError as e:
        schema_errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ManifestProcessingError('Route manifest failed schema validation',
                                      manifest_path=str(manifest_path), schema_errors=schema_errors) from e

    logger.info(f'Loaded route manifest {manifest_path} ({len(manifest.routes)} routes)')
    return manifest


def _resolve_factory(entry: RouteEntry, manifest_path: Optional[str]) -> Any:
    try:
        target = import_by_path(entry.factory)
        factory = target() if isinstance(target, type) else target
        for producer_path in entry.producers:
            factory.register_producer(import_by_path(producer_path))
    except (ImportError, AttributeError, ValueError, TypeError) as e:
        raise ManifestProcessingError(f"Cannot resolve factory '{entry.factory}': {e}",
                                      manifest_path=manifest_path) from e
    return factory


def apply_manifest(router: 'Router', manifest: RouteManifest, manifest_path: Optional[str] = None) -> int:
    """Register every enabled entry of *manifest* on *router*. Returns the number applied."""
    applied = 0
    for entry in manifest.enabled_routes:
        try:
            capability = import_by_path(entry.capability)
        except (ImportError, AttributeError, ValueError) as e:
            raise ManifestProcessingError(f"Cannot resolve capability '{entry.capability}': {e}",
                                          manifest_path=manifest_path) from e
        factory = _resolve_factory(entry, manifest_path)

        before = len(router.registry)
        router.registry.register(entry.table, capability, factory)
        if len(router.registry) > before:
            applied += 1
            logger.debug(f"Manifest route {entry.table.value} '{entry.capability}' -> {entry.factory}")

    skipped = len(manifest.routes) - len(manifest.enabled_routes)
    if skipped:
        logger.info(f'Skipped {skipped} disabled route(s) in {manifest_path or "manifest"}')
    return applied
