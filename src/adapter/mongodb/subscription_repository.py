"""MongoDB implementation of SubscriptionRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import SUBSCRIPTIONS_COLLECTION_NAME

logger = getLogger(__name__)


class MongoSubscriptionRepository:
    def __init__(self, db: Database):
        self.collection = db[SUBSCRIPTIONS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for subscriptions collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(
                self.collection,
                [('subscriber_id', 1), ('channel_id', 1)],
                'idx_subscriptions_pair',
                unique=True,
            )
            create_index_safe(self.collection, [('channel_id', 1)], 'idx_subscriptions_channel')
            return True
        except Exception as e:
            logger.error("Failed to create subscriptions indexes", extra={"error": str(e)})
            return False

    def add(self, subscriber_id: str, channel_id: str) -> bool:
        try:
            self.collection.insert_one({
                '_id': uuid.uuid4().hex,
                'subscriber_id': subscriber_id,
                'channel_id': channel_id,
                'created_at': datetime.now(timezone.utc),
            })
            return True
        except DuplicateKeyError:
            return False
        except PyMongoError as e:
            logger.error("Failed to add subscription",
                         extra={"subscriberId": subscriber_id, "channelId": channel_id, "error": str(e)})
            return False

    def remove(self, subscriber_id: str, channel_id: str) -> bool:
        try:
            result = self.collection.delete_one({'subscriber_id': subscriber_id, 'channel_id': channel_id})
            return result.deleted_count > 0
        except PyMongoError as e:
            logger.error("Failed to remove subscription",
                         extra={"subscriberId": subscriber_id, "channelId": channel_id, "error": str(e)})
            return False

    def exists(self, subscriber_id: str, channel_id: str) -> bool:
        try:
            return self.collection.count_documents(
                {'subscriber_id': subscriber_id, 'channel_id': channel_id}, limit=1
            ) > 0
        except PyMongoError as e:
            logger.error("Failed to check subscription", extra={"error": str(e)})
            return False

    def count_subscribers(self, channel_id: str) -> int:
        try:
            return self.collection.count_documents({'channel_id': channel_id})
        except PyMongoError as e:
            logger.error("Failed to count subscribers", extra={"channelId": channel_id, "error": str(e)})
            return 0

    def count_subscriptions(self, subscriber_id: str) -> int:
        try:
            return self.collection.count_documents({'subscriber_id': subscriber_id})
        except PyMongoError as e:
            logger.error("Failed to count subscriptions", extra={"subscriberId": subscriber_id, "error": str(e)})
            return 0
