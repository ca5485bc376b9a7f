import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from pocket_ledger.domain.errors import EventPublishError
from pocket_ledger.domain.events import DomainEvent, DomainEventSubscriber
from pocket_ledger.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubscriberFailure:
    """One subscriber that raised while handling one event"""
    event: DomainEvent
    subscriber: DomainEventSubscriber
    error: Exception

    def __str__(self) -> str:
        return (
            f"{self.subscriber!r} failed on {self.event.event_name} "
            f"({self.event.event_id}): {self.error}"
        )


class EventBus(ABC):
    """Publishes the events pulled from an aggregate to their subscribers"""

    @abstractmethod
    async def publish(self, events: Sequence[DomainEvent]) -> List[SubscriberFailure]:
        """
        Deliver a batch of events.

        Args:
            events: Events pulled from an aggregate, in recording order

        Returns:
            The subscriber failures collected while handling the batch
        """
        pass


class InMemoryEventBus(EventBus):
    """
    In-process event bus.

    The event name -> subscribers index is built once from each subscriber's
    subscribed_to(). A publish call runs every (event, subscriber) pair of
    the batch concurrently and waits for all of them. A failing subscriber
    never stops its siblings: failures are logged and returned, and only
    raised (as EventPublishError, after everything finished) when the bus
    is built with raise_on_failure=True.
    """

    def __init__(
        self,
        subscribers: Sequence[DomainEventSubscriber],
        raise_on_failure: bool = False,
    ):
        self.raise_on_failure = raise_on_failure
        self._subscriptions: Dict[str, List[DomainEventSubscriber]] = {}

        for subscriber in subscribers:
            for event_class in subscriber.subscribed_to():
                self._subscriptions.setdefault(event_class.event_name, []).append(subscriber)

    def subscribers_for(self, event_name: str) -> List[DomainEventSubscriber]:
        return list(self._subscriptions.get(event_name, []))

    async def publish(self, events: Sequence[DomainEvent]) -> List[SubscriberFailure]:
        deliveries: List[Tuple[DomainEvent, DomainEventSubscriber]] = []
        seen_event_ids = set()

        for event in events:
            # each event is delivered at most once per publish call
            if event.event_id in seen_event_ids:
                logger.warning(
                    "Duplicate event in batch skipped",
                    event_name=event.event_name,
                    event_id=event.event_id,
                )
                continue
            seen_event_ids.add(event.event_id)

            subscribers = self._subscriptions.get(event.event_name)
            if not subscribers:
                logger.debug("No subscribers for event", event_name=event.event_name)
                continue

            for subscriber in subscribers:
                deliveries.append((event, subscriber))

        if not deliveries:
            return []

        results = await asyncio.gather(
            *(subscriber.on(event) for event, subscriber in deliveries),
            return_exceptions=True,
        )

        failures: List[SubscriberFailure] = []
        for (event, subscriber), result in zip(deliveries, results):
            if isinstance(result, Exception):
                failures.append(SubscriberFailure(event, subscriber, result))
            elif isinstance(result, BaseException):
                raise result

        for failure in failures:
            logger.error(
                "Subscriber failed while handling event",
                event_name=failure.event.event_name,
                event_id=failure.event.event_id,
                aggregate_id=failure.event.aggregate_id,
                subscriber=repr(failure.subscriber),
                error=str(failure.error),
                error_type=type(failure.error).__name__,
            )

        logger.debug(
            "Published events",
            events=len(seen_event_ids),
            deliveries=len(deliveries),
            failures=len(failures),
        )

        if failures and self.raise_on_failure:
            raise EventPublishError(failures)

        return failures
