# tests/core/test_capability.py
from abc import ABC, abstractmethod
from typing import Protocol

import pytest

from protoroute.core.capability import (
    CapabilityKey,
    canonical_name,
    capability,
    capability_tag,
    conforms_to,
    is_native_capability,
    is_protocol,
    protocol_members,
    satisfies,
)
from routing_fixtures import EnglishGreeter, Greeter, HomeScreen, Mute, NativeGreeter, Screen, SettingsScreen


@capability('test.tagged')
class TaggedGreeter(Protocol):
    def greet(self) -> str: ...


class UntaggedChild(TaggedGreeter, Protocol):
    def wave(self) -> None: ...


class Vehicle(ABC):
    @abstractmethod
    def drive(self) -> None: ...


class Car(Vehicle):
    def drive(self) -> None:
        pass


class Dynamic:
    """Provides its members only on instances."""

    def __init__(self):
        self.title = 'dynamic'
        self.render = lambda: '<dynamic>'


class TestCapabilityIdentity:
    def test_canonical_name_is_module_and_qualname(self):
        assert canonical_name(Greeter) == f'{Greeter.__module__}.Greeter'

    def test_canonical_name_rejects_non_classes(self):
        with pytest.raises(TypeError):
            canonical_name('Greeter')

    def test_declared_tag_overrides_canonical_name(self):
        assert capability_tag(TaggedGreeter) == 'test.tagged'

    def test_sub_protocol_does_not_inherit_tag(self):
        assert capability_tag(UntaggedChild) == canonical_name(UntaggedChild)

    def test_capability_decorator_validates_arguments(self):
        with pytest.raises(ValueError):
            capability('  ')
        with pytest.raises(TypeError):
            capability('x')(lambda: None)

    def test_keys_with_same_tag_are_equal(self):
        """Two distinct descriptor objects sharing a tag denote the same capability."""

        @capability('test.tagged')
        class Other(Protocol):
            def greet(self) -> str: ...

        first = CapabilityKey.for_descriptor(TaggedGreeter)
        second = CapabilityKey.for_descriptor(Other)
        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_keys_with_different_tags_differ(self):
        assert CapabilityKey.for_descriptor(Greeter) != CapabilityKey.for_descriptor(Screen)

    def test_key_rendering(self):
        key = CapabilityKey.for_descriptor(TaggedGreeter)
        assert str(key) == 'test.tagged'
        assert key.name == 'TaggedGreeter'

    def test_empty_tag_rejected(self):
        with pytest.raises(ValueError):
            CapabilityKey(tag='')


class TestCapabilityKinds:
    def test_runtime_checkable_protocol_is_native(self):
        assert is_native_capability(NativeGreeter)

    def test_plain_protocol_is_declared(self):
        assert is_protocol(Greeter)
        assert not is_native_capability(Greeter)

    def test_plain_class_is_declared(self):
        assert not is_protocol(EnglishGreeter)
        assert not is_native_capability(EnglishGreeter)

    def test_protocol_members(self):
        assert protocol_members(Greeter) == {'greet'}
        assert protocol_members(Screen) == {'title', 'render'}
        assert protocol_members(UntaggedChild) == {'greet', 'wave'}


class TestConformance:
    def test_structural_conformance(self):
        assert conforms_to(EnglishGreeter, Greeter)
        assert conforms_to(HomeScreen, Screen)

    def test_missing_member_does_not_conform(self):
        assert not conforms_to(Mute, Greeter)
        assert not conforms_to(EnglishGreeter, Screen)

    def test_nominal_conformance_for_classes(self):
        assert conforms_to(Car, Vehicle)
        assert not conforms_to(EnglishGreeter, Vehicle)

    def test_non_class_candidate(self):
        assert not conforms_to(EnglishGreeter(), Greeter)

    def test_instance_members_count_for_satisfies(self):
        assert not conforms_to(Dynamic, Screen)
        assert satisfies(Dynamic(), Screen)

    def test_data_members_assigned_in_init_conform(self):
        assert conforms_to(SettingsScreen, Screen)
        assert satisfies(SettingsScreen(), Screen)

    def test_methods_still_required_at_class_level(self):
        class TitleOnly:
            def __init__(self):
                self.title = 'bare'

        assert not conforms_to(TitleOnly, Screen)

    def test_satisfies_rejects_none_and_wrong_types(self):
        assert not satisfies(None, Greeter)
        assert not satisfies(Mute(), Greeter)
        assert satisfies(Car(), Vehicle)
        assert not satisfies(EnglishGreeter(), Vehicle)
