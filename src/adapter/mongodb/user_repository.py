"""MongoDB implementation of UserRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateError
from domain.model.user import User

logger = getLogger(__name__)

# Fields a caller may change after creation. username is immutable.
UPDATABLE_FIELDS = {'email', 'full_name', 'password_hash', 'avatar', 'cover_image', 'refresh_token'}


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('username', 1)], 'idx_users_username', unique=True)
            create_index_safe(self.collection, [('email', 1)], 'idx_users_email', unique=True)
            create_index_safe(self.collection, [('created_at', -1)], 'idx_users_created_at')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            username=doc['username'],
            email=doc['email'],
            full_name=doc['full_name'],
            avatar=doc['avatar'],
            cover_image=doc.get('cover_image') or '',
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            password_hash=doc.get('password_hash'),
            refresh_token=doc.get('refresh_token'),
        )

    def _find_one(self, query: dict, context: dict) -> User | None:
        try:
            doc = self.collection.find_one(query)
            return self._to_domain(doc) if doc else None
        except PyMongoError as e:
            logger.error("Failed to get user", extra={**context, "error": str(e)})
            return None

    def create(
        self,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str = '',
    ) -> User | None:
        """Create a new user and return the User object.

        Raises:
            DuplicateError: username or email violates a unique index
        """
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'username': username,
            'email': email,
            'full_name': full_name,
            'password_hash': password_hash,
            'avatar': avatar,
            'cover_image': cover_image,
            'refresh_token': None,
            'created_at': now,
            'updated_at': now,
        }
        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError as e:
            logger.warning("User creation failed: username or email already exists",
                           extra={"username": username, "email": email})
            raise DuplicateError("User with email or username already exists") from e
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"username": username, "error": str(e)})
            return None

        logger.info("User created", extra={"userId": user_id, "username": username})
        return self._to_domain(user_doc)

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        return self._find_one({'_id': user_id}, {"userId": user_id})

    def get_by_username(self, username: str) -> User | None:
        return self._find_one({'username': username}, {"username": username})

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return User or None if not found."""
        return self._find_one({'email': email}, {"email": email})

    def find_by_username_or_email(self, username: str | None, email: str | None) -> User | None:
        clauses = []
        if username:
            clauses.append({'username': username})
        if email:
            clauses.append({'email': email})
        if not clauses:
            return None
        return self._find_one({'$or': clauses}, {"username": username, "email": email})

    def update(self, user_id: str, **fields) -> User | None:
        """Set fields on a user and return the updated User, or None if missing/failed.

        Raises:
            DuplicateError: new email collides with another account
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")

        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {'$set': {**fields, 'updated_at': datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise DuplicateError("Email already registered") from e
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user_id, "fields": sorted(fields), "error": str(e)})
            return None

        if not doc:
            return None
        logger.debug("Updated user", extra={"userId": user_id, "fields": sorted(fields)})
        return self._to_domain(doc)
