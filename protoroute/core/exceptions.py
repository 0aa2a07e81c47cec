"""
Exception classes for the protoroute routing layer.

Every error here marks a programming or integration defect (a wrong
registration, a factory breaking its contract) that is discoverable during
development. None of them describe an environmental condition a caller is
expected to recover from. Callers should treat them as bugs: let them
terminate the process, or, with ``strict_mode`` disabled, have them logged
and the offending call degraded to a no-op.

"Nothing is registered for this capability" is deliberately *not* an
exception for ``resolve``/``perform``; those return ``None``.
"""

from typing import Any, List, Optional


def _describe(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, type):
        return value.__qualname__
    if isinstance(value, str):
        return value
    return getattr(value, 'factory_id', None) or type(value).__name__


class RouteError(RuntimeError):
    """
    Base exception for all routing defects.

    Carries the capability, factory and table involved, when known, and
    renders them after the message.
    """

    def __init__(
        self,
        message: str,
        capability: Any = None,
        factory: Any = None,
        table: Optional[str] = None,
    ):
        super().__init__(message)
        self.capability = capability
        self.factory = factory
        self.table = table

    def __str__(self) -> str:
        base_msg = super().__str__()

        context_parts = []
        if self.table:
            context_parts.append(f"table={self.table}")
        if self.capability is not None:
            context_parts.append(f"capability={_describe(self.capability)}")
        if self.factory is not None:
            context_parts.append(f"factory={_describe(self.factory)}")

        if context_parts:
            return f"{base_msg} ({', '.join(context_parts)})"
        return base_msg


class RegistrationError(RouteError):
    """Base for violations detected while binding a capability to a factory."""
    pass


class DuplicateRegistrationError(RegistrationError):
    """
    Raised when a capability is registered twice in the same table.

    Bindings are permanent for the registry's lifetime, so a second
    registration, even with the same factory, is always a wiring mistake.
    """

    def __init__(self, message: str, capability: Any = None, factory: Any = None,
                 table: Optional[str] = None, existing_factory: Any = None):
        super().__init__(message, capability=capability, factory=factory, table=table)
        self.existing_factory = existing_factory


class NativeCapabilityError(RegistrationError):
    """
    Raised when a native (runtime-checkable) capability is registered through
    the declared-capability registry. Native capabilities belong to the
    native resolver's own registration path.
    """
    pass


class FactoryKindError(RegistrationError):
    """Raised when a factory is not of the base kind the table expects."""
    pass


class ConfigurationCapabilityError(RegistrationError):
    """
    Raised when a factory's default configuration does not satisfy the
    configuration capability it is being registered under.
    """
    pass


class RegistrationClosedError(RegistrationError):
    """Raised when registering after the registry has been frozen."""
    pass


class InvalidCapabilityError(RegistrationError):
    """Raised when the capability descriptor is not a class."""
    pass


class RoutePerformError(RouteError):
    """Base for violations detected while performing a route."""
    pass


class UnregisteredCapabilityError(RoutePerformError):
    """
    Raised when a destination is requested synchronously for a capability
    no factory is registered for.
    """
    pass


class SynchronousCompletionError(RoutePerformError):
    """
    Raised when a synchronous destination is requested from a factory that
    cannot complete within the calling frame.
    """
    pass


class DestinationTypeError(RoutePerformError):
    """
    Raised when a factory delivers a destination that does not satisfy the
    capability it was requested under.
    """

    def __init__(self, message: str, capability: Any = None, factory: Any = None,
                 table: Optional[str] = None, destination: Any = None):
        super().__init__(message, capability=capability, factory=factory, table=table)
        self.destination = destination


class IncompleteRouteError(RoutePerformError):
    """
    Raised, when completion is required, if a synchronous factory returns
    without ever calling its completion callback.
    """
    pass


class RouteOrderError(RouteError):
    """Raised when a route's prepare/complete stages happen out of order."""
    pass


class IntegrityViolationError(RouteError):
    """
    Raised by the deferred integrity pass when registered producer classes
    do not conform to the capability their factory is registered under.
    """

    def __init__(self, message: str, validation_errors: List[str], table: Optional[str] = None):
        super().__init__(message, table=table)
        self.validation_errors = validation_errors

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.validation_errors:
            error_list = "\n  - ".join(self.validation_errors)
            return f"{base_msg}\nValidation errors:\n  - {error_list}"
        return base_msg


class ConfigurationError(RouteError):
    """
    Raised when router configuration cannot be loaded or validated.

    This includes unreadable YAML files and values rejected by the
    configuration model.
    """
    pass


class ManifestProcessingError(RouteError):
    """
    Raised when a route manifest cannot be processed.

    This includes malformed YAML, entries rejected by the manifest schema
    and import paths that do not resolve.
    """

    def __init__(self, message: str, manifest_path: Optional[str] = None, schema_errors: Optional[List[str]] = None):
        super().__init__(message)
        self.manifest_path = manifest_path
        self.schema_errors = schema_errors or []

    def __str__(self) -> str:
        base_msg = super().__str__()

        if self.manifest_path:
            base_msg = f"{base_msg} (manifest={self.manifest_path})"

        if self.schema_errors:
            error_list = "\n  - ".join(self.schema_errors)
            return f"{base_msg}\nSchema errors:\n  - {error_list}"

        return base_msg
