"""In-memory implementation of SubscriptionRepository for testing."""

import uuid
from datetime import datetime, timezone

from domain.model.channel import Subscription


class FakeSubscriptionRepository:
    def __init__(self):
        self.store: dict[tuple[str, str], Subscription] = {}

    def add(self, subscriber_id: str, channel_id: str) -> bool:
        key = (subscriber_id, channel_id)
        if key in self.store:
            return False
        self.store[key] = Subscription(
            id=uuid.uuid4().hex,
            subscriber_id=subscriber_id,
            channel_id=channel_id,
            created_at=datetime.now(timezone.utc),
        )
        return True

    def remove(self, subscriber_id: str, channel_id: str) -> bool:
        return self.store.pop((subscriber_id, channel_id), None) is not None

    def exists(self, subscriber_id: str, channel_id: str) -> bool:
        return (subscriber_id, channel_id) in self.store

    def count_subscribers(self, channel_id: str) -> int:
        return sum(1 for s in self.store.values() if s.channel_id == channel_id)

    def count_subscriptions(self, subscriber_id: str) -> int:
        return sum(1 for s in self.store.values() if s.subscriber_id == subscriber_id)
