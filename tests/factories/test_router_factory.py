# tests/factories/test_router_factory.py
import asyncio

import pytest

from protoroute.core.exceptions import RoutePerformError
from protoroute.core.results import RouteStage
from protoroute.domain.configuration import (
    RouteIntent,
    ServiceRouteConfiguration,
    ViewRouteConfiguration,
)
from protoroute.domain.ports.router_factory_port import RouterFactoryPort
from protoroute.factories.router_factory import RouteHandle, ServiceRouterFactory
from routing_fixtures import (
    AsyncGreeterFactory,
    EnglishGreeter,
    GreeterFactory,
    HomeScreen,
    Mute,
    ScreenFactory,
)


class ExplodingFactory(ServiceRouterFactory):
    def build_destination(self, configuration):
        raise ValueError('construction failed')


class EmptyFactory(ServiceRouterFactory):
    def build_destination(self, configuration):
        return None


class TestProducers:
    def test_register_and_enumerate(self):
        factory = GreeterFactory()
        factory.register_producer(Mute)
        factory.register_producer(Mute)
        assert factory.enumerate_registered_producers() == (EnglishGreeter, Mute)

    def test_producer_must_be_a_class(self):
        with pytest.raises(TypeError):
            GreeterFactory().register_producer(EnglishGreeter())

    def test_validate_returns_first_failing_producer(self):
        factory = GreeterFactory()
        factory.register_producer(Mute)
        factory.register_producer(HomeScreen)
        predicate = lambda producer: producer is EnglishGreeter
        assert factory.validate_registered_producers(predicate) is Mute
        assert factory.invalid_producers(predicate) == [Mute, HomeScreen]
        assert factory.validate_registered_producers(lambda producer: True) is None

    def test_satisfies_factory_port(self):
        assert isinstance(GreeterFactory(), RouterFactoryPort)


class TestConfiguration:
    def test_family_default_configurations(self):
        assert type(GreeterFactory().default_configuration()) is ServiceRouteConfiguration
        assert type(ScreenFactory().default_configuration()) is ViewRouteConfiguration

    def test_each_default_configuration_is_fresh(self):
        factory = GreeterFactory()
        first, second = factory.default_configuration(), factory.default_configuration()
        assert first is not second
        assert first.route_id != second.route_id

    def test_factory_id_defaults_to_class_name(self):
        assert GreeterFactory().factory_id == 'GreeterFactory'
        assert GreeterFactory('custom').factory_id == 'custom'


class TestInvoke:
    def test_prepare_happens_before_completion(self):
        factory = GreeterFactory()
        config = factory.default_configuration()
        events = []
        config.prepare_destination = lambda d: events.append(('prepare', d, config.outcome.stage))
        config.route_completion = lambda d: events.append(('complete', d, config.outcome.stage))

        handle = factory.invoke(config)

        destination = factory.built[0]
        assert events == [
            ('prepare', destination, RouteStage.PENDING),
            ('complete', destination, RouteStage.COMPLETED),
        ]
        assert isinstance(handle, RouteHandle)
        assert handle.destination is destination
        assert handle.route_id == config.route_id

    def test_build_failure_marks_outcome_and_raises(self):
        factory = ExplodingFactory()
        config = factory.default_configuration()
        with pytest.raises(ValueError):
            factory.invoke(config)
        assert config.outcome.stage is RouteStage.FAILED

    def test_missing_destination_fails_the_route(self):
        factory = EmptyFactory()
        config = factory.default_configuration()
        completions = []
        config.route_completion = completions.append
        handle = factory.invoke(config)
        assert handle.outcome.stage is RouteStage.FAILED
        assert completions == []

    def test_prepare_failure_fails_the_route(self):
        factory = GreeterFactory()
        config = factory.default_configuration()
        finished = []
        config.outcome.add_done_callback(finished.append)

        def bad_prepare(destination):
            raise ValueError('boom')

        config.prepare_destination = bad_prepare
        with pytest.raises(ValueError):
            factory.invoke(config)
        assert config.outcome.stage is RouteStage.FAILED
        assert isinstance(config.outcome.error, ValueError)
        assert finished == [config.outcome]

    def test_unsupported_intent_rejected(self):
        factory = GreeterFactory()
        config = factory.default_configuration()
        config.route_intent = RouteIntent.REMOVE
        with pytest.raises(RoutePerformError):
            factory.invoke(config)

    def test_completed_route_cannot_be_cancelled(self):
        handle = GreeterFactory().invoke(ServiceRouteConfiguration())
        assert handle.cancel() is False
        assert not handle.is_cancelled


class TestViewFactory:
    def test_perform_hook_only_for_perform_intent(self):
        factory = ScreenFactory()
        factory.invoke(factory.default_configuration())
        config = factory.default_configuration()
        config.route_intent = RouteIntent.GET_DESTINATION
        factory.invoke(config)
        assert len(factory.performed) == 1

    def test_remove_performed_route(self):
        factory = ScreenFactory()
        handle = factory.invoke(factory.default_configuration())
        assert factory.remove(handle) is True
        assert factory.removed == [handle.destination]
        assert factory.remove(handle) is False

    def test_remove_rejects_foreign_handle(self):
        handle = ScreenFactory().invoke(ViewRouteConfiguration())
        with pytest.raises(RoutePerformError):
            ScreenFactory().remove(handle)


class TestAsyncFactory:
    def test_cannot_complete_synchronously(self):
        assert AsyncGreeterFactory().can_complete_synchronously() is False
        assert GreeterFactory().can_complete_synchronously() is True

    @pytest.mark.asyncio
    async def test_invoke_returns_before_completion(self):
        factory = AsyncGreeterFactory()
        config = factory.default_configuration()
        completions = []
        config.route_completion = completions.append

        handle = factory.invoke(config)
        assert not handle.outcome.is_done
        await handle.task

        assert handle.outcome.is_completed
        assert isinstance(completions[0], EnglishGreeter)

    @pytest.mark.asyncio
    async def test_cancel_in_flight_route(self):
        factory = AsyncGreeterFactory()
        handle = factory.invoke(factory.default_configuration())
        assert handle.cancel() is True
        with pytest.raises(asyncio.CancelledError):
            await handle.task
        assert handle.is_cancelled
        assert handle.outcome.stage is RouteStage.FAILED

    def test_invoke_requires_running_loop(self):
        config = ServiceRouteConfiguration()
        with pytest.raises(RoutePerformError, match='running event loop'):
            AsyncGreeterFactory().invoke(config)
        assert config.outcome.stage is RouteStage.FAILED

    @pytest.mark.asyncio
    async def test_prepare_failure_fails_the_route(self):
        factory = AsyncGreeterFactory()
        config = factory.default_configuration()
        completions = []
        config.route_completion = completions.append

        def bad_prepare(destination):
            raise ValueError('boom')

        config.prepare_destination = bad_prepare
        handle = factory.invoke(config)
        await handle.task

        assert handle.outcome.stage is RouteStage.FAILED
        assert isinstance(handle.outcome.error, ValueError)
        assert completions == []
