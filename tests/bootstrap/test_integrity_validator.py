# tests/bootstrap/test_integrity_validator.py
import logging
from unittest.mock import MagicMock

import pytest

from protoroute.bootstrap.signals import ROUTE_INTEGRITY_VALIDATED, ROUTE_INTEGRITY_VIOLATION
from protoroute.bootstrap.validators.integrity_validator import IntegrityValidator, ValidatorState
from protoroute.configs.router_config import SERVICE_ROUTER_REGISTER_COMPLETE, VIEW_ROUTER_REGISTER_COMPLETE
from protoroute.core.exceptions import IntegrityViolationError
from protoroute.core.registry.route_registry import RouteFamily
from routing_fixtures import Greeter, GreeterFactory, Mute, Screen, ScreenFactory, SettingsScreen


@pytest.fixture
def service_validator(registry, event_bus):
    validator = IntegrityValidator(registry, event_bus, RouteFamily.SERVICE)
    validator.arm()
    return validator


class TestIntegrityValidator:
    def test_default_signal_per_family(self, registry, event_bus):
        assert IntegrityValidator(registry, event_bus, RouteFamily.VIEW).signal_name == VIEW_ROUTER_REGISTER_COMPLETE
        assert IntegrityValidator(registry, event_bus, 'service').signal_name == SERVICE_ROUTER_REGISTER_COMPLETE

    def test_arm_subscribes(self, service_validator, event_bus):
        assert service_validator.state is ValidatorState.ARMED
        assert event_bus.subscriber_count(SERVICE_ROUTER_REGISTER_COMPLETE) == 1

    def test_arm_requires_event_bus(self, registry):
        with pytest.raises(ValueError):
            IntegrityValidator(registry, None, RouteFamily.SERVICE).arm()

    def test_fires_once(self, registry, event_bus, service_validator):
        """Delivering the completion signal twice scans only once."""
        registry.register_service_protocol(Greeter, GreeterFactory())
        registry.freeze()

        event_bus.publish(SERVICE_ROUTER_REGISTER_COMPLETE)
        event_bus.publish(SERVICE_ROUTER_REGISTER_COMPLETE)

        assert service_validator.scan_count == 1
        assert service_validator.has_fired
        assert event_bus.subscriber_count(SERVICE_ROUTER_REGISTER_COMPLETE) == 0
        validated = [e for e in event_bus.history() if e.signal_name == ROUTE_INTEGRITY_VALIDATED]
        assert len(validated) == 1

    def test_other_family_signal_is_ignored(self, event_bus, service_validator):
        event_bus.publish(VIEW_ROUTER_REGISTER_COMPLETE)
        assert service_validator.scan_count == 0
        assert service_validator.is_armed

    def test_non_conforming_producer_is_fatal(self, registry, event_bus, service_validator):
        factory = GreeterFactory('liar')
        factory.register_producer(Mute)
        registry.register_service_protocol(Greeter, factory)

        with pytest.raises(IntegrityViolationError) as exc_info:
            event_bus.publish(SERVICE_ROUTER_REGISTER_COMPLETE)

        errors = exc_info.value.validation_errors
        assert len(errors) == 1
        assert 'Mute' in errors[0] and 'liar' in errors[0]
        assert service_validator.scan_count == 1

    def test_every_violation_is_listed(self, registry, event_bus):
        validator = IntegrityValidator(registry, event_bus, RouteFamily.VIEW, strict_mode=False)
        factory = ScreenFactory(producer=Mute)
        factory.register_producer(GreeterFactory)
        registry.register_view_protocol(Screen, factory)

        assert len(validator.validate()) == 2
        assert len(validator.violations) == 2

    def test_lenient_mode_logs_violations(self, registry, event_bus, caplog):
        validator = IntegrityValidator(registry, event_bus, RouteFamily.SERVICE, strict_mode=False)
        validator.arm()
        registry.register_service_protocol(Greeter, GreeterFactory(producer=Mute))

        with caplog.at_level(logging.ERROR):
            event_bus.publish(SERVICE_ROUTER_REGISTER_COMPLETE)

        assert validator.violations
        assert any('route integrity failed' in r.getMessage() for r in caplog.records)
        assert any(e.signal_name == ROUTE_INTEGRITY_VIOLATION for e in event_bus.history())

    def test_only_own_family_is_scanned(self, registry, event_bus, service_validator):
        registry.register_view_protocol(Screen, ScreenFactory(producer=Mute))
        event_bus.publish(SERVICE_ROUTER_REGISTER_COMPLETE)
        assert service_validator.violations == []

    def test_custom_conformance_predicate(self, registry, event_bus):
        predicate = MagicMock(return_value=True)
        validator = IntegrityValidator(registry, event_bus, RouteFamily.SERVICE, conformance=predicate)
        registry.register_service_protocol(Greeter, GreeterFactory(producer=Mute))

        assert validator.validate() == []
        predicate.assert_called_once_with(Mute, Greeter)

    def test_arm_twice_is_ignored(self, event_bus, service_validator):
        service_validator.arm()
        assert event_bus.subscriber_count(SERVICE_ROUTER_REGISTER_COMPLETE) == 1

    def test_producer_with_instance_data_members_passes(self, registry, event_bus):
        validator = IntegrityValidator(registry, event_bus, RouteFamily.VIEW)
        validator.arm()
        registry.register_view_protocol(Screen, ScreenFactory(producer=SettingsScreen))
        registry.freeze()

        event_bus.publish(VIEW_ROUTER_REGISTER_COMPLETE)
        assert validator.violations == []
        assert validator.scan_count == 1
