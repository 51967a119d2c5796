"""Channel service — public channel profiles and subscriptions."""

import logging

from domain.model.channel import ChannelProfile
from domain.model.errors import NotFoundError, ValidationError
from domain.model.user import User, normalize_username
from port.subscription_repository import SubscriptionRepository
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)


def _get_channel(users: UserRepository, username: str | None) -> User:
    if not username or not username.strip():
        raise ValidationError("Username is missing")

    channel = users.get_by_username(normalize_username(username))
    if not channel:
        raise NotFoundError("Channel does not exist")
    return channel


def get_channel_profile(
    users: UserRepository,
    subscriptions: SubscriptionRepository,
    username: str,
    viewer_id: str | None = None,
) -> ChannelProfile:
    """Build the public profile of a channel as seen by `viewer_id`.

    Raises:
        ValidationError: username is blank
        NotFoundError: no account with that username
    """
    channel = _get_channel(users, username)
    return ChannelProfile(
        id=channel.id,
        username=channel.username,
        full_name=channel.full_name,
        avatar=channel.avatar,
        cover_image=channel.cover_image,
        subscribers_count=subscriptions.count_subscribers(channel.id),
        channels_subscribed_to_count=subscriptions.count_subscriptions(channel.id),
        is_subscribed=bool(viewer_id) and subscriptions.exists(viewer_id, channel.id),
    )


def subscribe(
    users: UserRepository,
    subscriptions: SubscriptionRepository,
    subscriber_id: str,
    username: str,
) -> ChannelProfile:
    """Subscribe to a channel. Subscribing twice is a no-op."""
    channel = _get_channel(users, username)
    if channel.id == subscriber_id:
        raise ValidationError("Cannot subscribe to your own channel")

    if subscriptions.add(subscriber_id, channel.id):
        logger.info("Subscribed", extra={"userId": subscriber_id, "channelId": channel.id})
    return get_channel_profile(users, subscriptions, channel.username, viewer_id=subscriber_id)


def unsubscribe(
    users: UserRepository,
    subscriptions: SubscriptionRepository,
    subscriber_id: str,
    username: str,
) -> ChannelProfile:
    channel = _get_channel(users, username)
    if subscriptions.remove(subscriber_id, channel.id):
        logger.info("Unsubscribed", extra={"userId": subscriber_id, "channelId": channel.id})
    return get_channel_profile(users, subscriptions, channel.username, viewer_id=subscriber_id)
