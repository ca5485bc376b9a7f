from pocket_ledger.events.bus import EventBus, InMemoryEventBus, SubscriberFailure

__all__ = [
    "EventBus",
    "InMemoryEventBus",
    "SubscriberFailure",
]
