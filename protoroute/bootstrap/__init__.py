# protoroute/bootstrap/__init__.py
from __future__ import annotations

from .exceptions import *
from .bootstrap import BootstrapResult, Registrar, bootstrap_routes, bootstrap_routes_sync
from .manifest import RouteEntry, RouteManifest, apply_manifest, import_by_path, load_manifest
from .signals import RouteSignalEmitter
from .validators.integrity_validator import IntegrityValidator, ValidatorState

__all__ = [
    'bootstrap_routes', 'bootstrap_routes_sync', 'BootstrapResult', 'Registrar',
    'RouteEntry', 'RouteManifest', 'load_manifest', 'apply_manifest', 'import_by_path',
    'RouteSignalEmitter',
    'IntegrityValidator', 'ValidatorState',
    'RouteError', 'RegistrationError', 'DuplicateRegistrationError', 'NativeCapabilityError',
    'FactoryKindError', 'ConfigurationCapabilityError', 'RegistrationClosedError', 'InvalidCapabilityError',
    'RoutePerformError', 'UnregisteredCapabilityError', 'SynchronousCompletionError',
    'DestinationTypeError', 'IncompleteRouteError', 'RouteOrderError',
    'IntegrityViolationError', 'ConfigurationError', 'ManifestProcessingError',
]
