# tests/infrastructure/test_memory_event_bus.py
import asyncio
import logging

import pytest

from protoroute.core.exceptions import IntegrityViolationError
from protoroute.domain.ports.event_bus_port import EventBusPort
from protoroute.infrastructure.event_bus.memory_event_bus import MemoryEventBus


class TestMemoryEventBus:
    def test_implements_port(self, event_bus):
        assert isinstance(event_bus, EventBusPort)

    def test_handlers_run_inline_in_subscription_order(self, event_bus):
        calls = []
        event_bus.subscribe('SIG', lambda p: calls.append(('a', p)))
        event_bus.subscribe('SIG', lambda p: calls.append(('b', p)))
        event_bus.publish('SIG', 1)
        assert calls == [('a', 1), ('b', 1)]

    def test_unsubscribe_stops_delivery(self, event_bus):
        calls = []
        handler = calls.append
        event_bus.subscribe('SIG', handler)
        event_bus.unsubscribe('SIG', handler)
        event_bus.publish('SIG', 'x')
        assert calls == []
        assert event_bus.subscriber_count('SIG') == 0

    def test_unsubscribe_unknown_handler_is_ignored(self, event_bus):
        event_bus.unsubscribe('NOPE', print)

    def test_handler_unsubscribing_itself_does_not_skip_others(self, event_bus):
        calls = []

        def once(payload):
            event_bus.unsubscribe('SIG', once)
            calls.append('once')

        event_bus.subscribe('SIG', once)
        event_bus.subscribe('SIG', lambda p: calls.append('other'))
        event_bus.publish('SIG')
        event_bus.publish('SIG')
        assert calls == ['once', 'other', 'other']

    def test_route_errors_propagate_to_publisher(self, event_bus):
        def failing(payload):
            raise IntegrityViolationError('bad producers', validation_errors=['x'])

        event_bus.subscribe('SIG', failing)
        with pytest.raises(IntegrityViolationError):
            event_bus.publish('SIG')

    def test_other_handler_errors_are_logged(self, event_bus, caplog):
        calls = []
        event_bus.subscribe('SIG', lambda p: 1 / 0)
        event_bus.subscribe('SIG', lambda p: calls.append(p))
        with caplog.at_level(logging.ERROR):
            event_bus.publish('SIG', 'payload')
        assert calls == ['payload']
        assert any('Error in handler' in r.getMessage() for r in caplog.records)

    def test_history_is_bounded(self):
        bus = MemoryEventBus(max_history=2)
        for i in range(5):
            bus.publish('SIG', i)
        assert [e.payload for e in bus.history()] == [3, 4]
        assert bus.get_stats()['publish_count'] == 5

    def test_history_disabled(self):
        bus = MemoryEventBus(max_history=0)
        bus.publish('SIG', 1)
        assert bus.history() == []

    def test_coroutine_handler_without_loop_runs_to_completion(self, event_bus):
        calls = []

        async def handler(payload):
            await asyncio.sleep(0)
            calls.append(payload)

        event_bus.subscribe('SIG', handler)
        event_bus.publish('SIG', 'done')
        assert calls == ['done']

    @pytest.mark.asyncio
    async def test_coroutine_handler_is_scheduled_on_running_loop(self, event_bus):
        calls = []

        async def handler(payload):
            calls.append(payload)

        event_bus.subscribe('SIG', handler)
        event_bus.publish('SIG', 'later')
        assert calls == []
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert calls == ['later']
