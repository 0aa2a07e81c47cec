"""
Public routing exception re-exports.

Import your exceptions like:
    from protoroute.bootstrap.exceptions import RouteError, DuplicateRegistrationError, ...
The actual definitions live in protoroute.core.exceptions.
"""
from protoroute.core.exceptions import *  # noqa: F401,F403
from protoroute.core.exceptions import (  # noqa: F401
    ConfigurationCapabilityError,
    ConfigurationError,
    DestinationTypeError,
    DuplicateRegistrationError,
    FactoryKindError,
    IncompleteRouteError,
    IntegrityViolationError,
    InvalidCapabilityError,
    ManifestProcessingError,
    NativeCapabilityError,
    RegistrationClosedError,
    RegistrationError,
    RouteError,
    RouteOrderError,
    RoutePerformError,
    SynchronousCompletionError,
    UnregisteredCapabilityError,
)
