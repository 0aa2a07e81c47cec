"""
Capability identity and conformance helpers.

A *capability descriptor* is the type a caller asks for: a ``typing.Protocol``,
an ABC, or a configuration class. Registries never key on the descriptor
object itself; they key on a :class:`CapabilityKey` whose identity is a
stable string tag.

Two capability systems share one logical namespace:

* **declared** capabilities - plain Protocols or classes, tracked only by the
  registry's own bookkeeping;
* **native** capabilities - ``@runtime_checkable`` Protocols, whose
  conformance the runtime can check and which are registered through the
  native-side resolver instead.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Generic, Protocol, Set, TypeVar

__all__ = [
    'CapabilityKey',
    'capability',
    'canonical_name',
    'capability_tag',
    'is_protocol',
    'is_native_capability',
    'protocol_members',
    'conforms_to',
    'satisfies',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')

TAG_ATTRIBUTE = '__capability_tag__'

# Attributes typing.Protocol machinery puts on every protocol class.
_PROTOCOL_INTERNALS: FrozenSet[str] = frozenset({
    '__abstractmethods__', '__annotations__', '__annotate__', '__dict__', '__doc__',
    '__init__', '__module__', '__new__', '__slots__', '__subclasshook__',
    '__weakref__', '__class_getitem__', '__match_args__', '__static_attributes__',
    '__firstlineno__', '__protocol_attrs__', '__non_callable_proto_members__',
    '__type_params__', '__parameters__', '__orig_bases__', '__qualname__',
    '__init_subclass__', '__callable_proto_members_only__', '__annotate_func__',
    '__annotations_cache__', TAG_ATTRIBUTE,
})


def canonical_name(descriptor: Any) -> str:
    """Return ``module.qualname`` for a capability class."""
    if not isinstance(descriptor, type):
        raise TypeError(f'Capability descriptor must be a class, got {type(descriptor).__name__}')
    return f'{descriptor.__module__}.{descriptor.__qualname__}'


def capability_tag(descriptor: Any) -> str:
    """
    Return the identity tag of *descriptor*.

    A tag declared with :func:`capability` wins. Only the class's own
    ``__dict__`` is consulted so a sub-protocol never inherits its parent's tag.
    """
    declared = getattr(descriptor, '__dict__', {}).get(TAG_ATTRIBUTE)
    if declared:
        return declared
    return canonical_name(descriptor)


def capability(tag: str) -> Callable[[T], T]:
    """
    Class decorator giving a capability an explicit, stable identity tag::

        @capability('app.greeter')
        class Greeter(Protocol):
            def greet(self) -> str: ...
    """
    if not isinstance(tag, str) or not tag.strip():
        raise ValueError('Capability tag must be a non-empty string')

    def decorate(descriptor: T) -> T:
        if not isinstance(descriptor, type):
            raise TypeError(f'@capability can only decorate classes, got {descriptor!r}')
        setattr(descriptor, TAG_ATTRIBUTE, tag)
        logger.debug(f"Capability {descriptor.__qualname__} tagged as '{tag}'")
        return descriptor

    return decorate


@dataclass(frozen=True)
class CapabilityKey:
    """Hashable identity of a capability. Equal iff the tags are equal."""
    tag: str
    descriptor: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.tag, str) or not self.tag:
            raise ValueError('CapabilityKey tag must be a non-empty string')

    @classmethod
    def for_descriptor(cls, descriptor: Any) -> 'CapabilityKey':
        return cls(tag=capability_tag(descriptor), descriptor=descriptor)

    @property
    def name(self) -> str:
        return getattr(self.descriptor, '__qualname__', self.tag)

    def __str__(self) -> str:
        return self.tag


def is_protocol(descriptor: Any) -> bool:
    return isinstance(descriptor, type) and bool(getattr(descriptor, '_is_protocol', False))


def is_native_capability(descriptor: Any) -> bool:
    """True for ``@runtime_checkable`` protocols."""
    # typing marks runtime-checkable protocols with this private flag on every supported version
    return is_protocol(descriptor) and bool(getattr(descriptor, '_is_runtime_protocol', False))


def protocol_members(descriptor: Any) -> Set[str]:
    """Names a class must provide to structurally satisfy *descriptor*."""
    members: Set[str] = set()
    for klass in descriptor.__mro__:
        if klass in (object, Protocol, Generic):
            continue
        names = set(vars(klass)) | set(inspect.get_annotations(klass))
        for name in names:
            if name in _PROTOCOL_INTERNALS or name.startswith('_abc_') or name in ('_is_protocol', '_is_runtime_protocol'):
                continue
            if name.startswith('_') and not (name.startswith('__') and name.endswith('__')):
                continue
            members.add(name)
    return members


def _data_members(descriptor: Any) -> Set[str]:
    """Protocol members declared only as annotations (instance data)."""
    defined: Set[str] = set()
    for klass in descriptor.__mro__:
        defined.update(vars(klass))
    return {name for name in protocol_members(descriptor) if name not in defined}


def _annotated_names(candidate: type) -> Set[str]:
    names: Set[str] = set()
    for klass in candidate.__mro__:
        if klass is object:
            continue
        try:
            names.update(inspect.get_annotations(klass))
        except Exception:
            logger.debug(f'Could not read annotations of {klass!r}', exc_info=True)
    return names


def conforms_to(candidate: Any, descriptor: Any) -> bool:
    """
    Default conformance predicate: does the class *candidate* satisfy
    *descriptor*?

    Protocols are checked structurally: every method or class-level member
    must be present on the class. Annotation-only data members are usually
    assigned in ``__init__`` and can't be seen on the class, so they are not
    required here; :func:`satisfies` checks them on instances.
    Anything else falls back to ``issubclass``.
    """
    if descriptor is Any or descriptor is object:
        return True
    if not isinstance(candidate, type):
        return False
    if is_protocol(descriptor):
        if descriptor in candidate.__mro__:
            return True
        required = protocol_members(descriptor) - _data_members(descriptor)
        return all(hasattr(candidate, name) for name in required)
    if isinstance(descriptor, type):
        try:
            return issubclass(candidate, descriptor)
        except TypeError:
            return False
    return False


def satisfies(instance: Any, descriptor: Any) -> bool:
    """Instance form of :func:`conforms_to`; instance attributes count."""
    if descriptor is Any or descriptor is object:
        return True
    if instance is None:
        return False
    if is_protocol(descriptor):
        if descriptor in type(instance).__mro__:
            return True
        annotated = _annotated_names(type(instance))
        return all(hasattr(instance, name) or name in annotated for name in protocol_members(descriptor))
    if isinstance(descriptor, type):
        return isinstance(instance, descriptor)
    return False
