"""Channel domain models.

A channel is the public face of a user account: other users subscribe to it.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Subscription:
    """A subscriber following a channel. Both ids are user ids."""
    id: str
    subscriber_id: str
    channel_id: str
    created_at: datetime


@dataclass(frozen=True)
class ChannelProfile:
    """Public channel view of a user, relative to the viewer."""
    id: str
    username: str
    full_name: str
    avatar: str
    cover_image: str
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
