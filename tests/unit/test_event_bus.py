import asyncio
from typing import List, Type

import pytest

from pocket_ledger.domain.errors import EventPublishError
from pocket_ledger.domain.events import (
    DomainEvent,
    DomainEventSubscriber,
    TransactionCreated,
    TransactionDeleted,
)
from pocket_ledger.events.bus import InMemoryEventBus, SubscriberFailure


class RecordingSubscriber(DomainEventSubscriber):
    """Remembers every event it receives"""

    def __init__(self, *event_classes: Type[DomainEvent], delay: float = 0):
        self.event_classes = list(event_classes)
        self.delay = delay
        self.received: List[DomainEvent] = []

    def subscribed_to(self):
        return self.event_classes

    async def on(self, event):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.received.append(event)


class FailingSubscriber(DomainEventSubscriber):

    def __init__(self, *event_classes: Type[DomainEvent]):
        self.event_classes = list(event_classes)

    def subscribed_to(self):
        return self.event_classes

    async def on(self, event):
        raise RuntimeError("boom")


class BarrierSubscriber(DomainEventSubscriber):
    """Only completes if the other barrier subscriber runs at the same time"""

    def __init__(self, barrier: asyncio.Event, partner: asyncio.Event):
        self.barrier = barrier
        self.partner = partner

    def subscribed_to(self):
        return [TransactionCreated]

    async def on(self, event):
        self.barrier.set()
        await asyncio.wait_for(self.partner.wait(), timeout=1)


@pytest.fixture
def created_event(outbound_transaction) -> TransactionCreated:
    return TransactionCreated(**outbound_transaction._snapshot())

@pytest.fixture
def deleted_event(outbound_transaction) -> TransactionDeleted:
    return TransactionDeleted(**outbound_transaction._snapshot())


@pytest.mark.unit
class TestSubscriptionIndex:

    def test_index_is_built_from_subscribed_to(self):
        # Arrange
        first = RecordingSubscriber(TransactionCreated)
        second = RecordingSubscriber(TransactionCreated, TransactionDeleted)

        # Act
        bus = InMemoryEventBus([first, second])

        # Assert
        assert bus.subscribers_for(TransactionCreated.event_name) == [first, second]
        assert bus.subscribers_for(TransactionDeleted.event_name) == [second]
        assert bus.subscribers_for("ledger.unknown") == []


@pytest.mark.unit
class TestPublish:

    @pytest.mark.asyncio
    async def test_routes_by_event_name(self, created_event, deleted_event):
        # Arrange
        on_created = RecordingSubscriber(TransactionCreated)
        on_deleted = RecordingSubscriber(TransactionDeleted)
        bus = InMemoryEventBus([on_created, on_deleted])

        # Act
        failures = await bus.publish([created_event, deleted_event])

        # Assert
        assert failures == []
        assert on_created.received == [created_event]
        assert on_deleted.received == [deleted_event]

    @pytest.mark.asyncio
    async def test_event_without_subscribers_is_ignored(self, deleted_event):
        bus = InMemoryEventBus([RecordingSubscriber(TransactionCreated)])

        assert await bus.publish([deleted_event]) == []

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await InMemoryEventBus([]).publish([]) == []

    @pytest.mark.asyncio
    async def test_duplicate_event_is_delivered_once(self, created_event):
        subscriber = RecordingSubscriber(TransactionCreated)
        bus = InMemoryEventBus([subscriber])

        await bus.publish([created_event, created_event])

        assert subscriber.received == [created_event]

    @pytest.mark.asyncio
    async def test_subscribers_run_concurrently(self, created_event):
        # Arrange
        first_started = asyncio.Event()
        second_started = asyncio.Event()
        bus = InMemoryEventBus([
            BarrierSubscriber(first_started, second_started),
            BarrierSubscriber(second_started, first_started),
        ])

        # Act
        failures = await bus.publish([created_event])

        # Assert: sequential delivery would time out waiting for the partner
        assert failures == []

    @pytest.mark.asyncio
    async def test_publish_waits_for_all_subscribers(self, created_event):
        slow = RecordingSubscriber(TransactionCreated, delay=0.05)
        bus = InMemoryEventBus([slow])

        await bus.publish([created_event])

        assert slow.received == [created_event]


@pytest.mark.unit
class TestFailureHandling:

    @pytest.mark.asyncio
    async def test_failure_does_not_block_siblings(self, created_event):
        # Arrange
        failing = FailingSubscriber(TransactionCreated)
        healthy = RecordingSubscriber(TransactionCreated)
        bus = InMemoryEventBus([failing, healthy])

        # Act
        failures = await bus.publish([created_event])

        # Assert
        assert healthy.received == [created_event]
        assert len(failures) == 1
        failure = failures[0]
        assert isinstance(failure, SubscriberFailure)
        assert failure.subscriber is failing
        assert failure.event is created_event
        assert str(failure.error) == "boom"
        assert "FailingSubscriber" in str(failure)

    @pytest.mark.asyncio
    async def test_failures_are_logged(self, mocker, created_event):
        # Arrange
        mock_logger = mocker.patch("pocket_ledger.events.bus.logger")
        bus = InMemoryEventBus([FailingSubscriber(TransactionCreated)])

        # Act
        await bus.publish([created_event])

        # Assert
        mock_logger.error.assert_called_once()
        kwargs = mock_logger.error.call_args.kwargs
        assert kwargs["event_name"] == TransactionCreated.event_name
        assert kwargs["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_strict_bus_raises_after_all_subscribers_ran(self, created_event):
        # Arrange
        healthy = RecordingSubscriber(TransactionCreated)
        bus = InMemoryEventBus(
            [FailingSubscriber(TransactionCreated), FailingSubscriber(TransactionCreated), healthy],
            raise_on_failure=True,
        )

        # Act & Assert
        with pytest.raises(EventPublishError) as exc_info:
            await bus.publish([created_event])

        assert len(exc_info.value.failures) == 2
        assert healthy.received == [created_event]
        assert exc_info.value.to_primitives()["type"] == "EventPublishError"
