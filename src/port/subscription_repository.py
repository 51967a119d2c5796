from typing import Protocol


class SubscriptionRepository(Protocol):
    """Protocol defining the interface for channel subscription data access."""

    def add(self, subscriber_id: str, channel_id: str) -> bool:
        """Subscribe. Return True if a new subscription was created."""
        ...

    def remove(self, subscriber_id: str, channel_id: str) -> bool:
        """Unsubscribe. Return True if a subscription was removed."""
        ...

    def exists(self, subscriber_id: str, channel_id: str) -> bool: ...
    def count_subscribers(self, channel_id: str) -> int: ...
    def count_subscriptions(self, subscriber_id: str) -> int: ...
