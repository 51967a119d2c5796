"""In-memory implementation of UserRepository for testing."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from domain.model.errors import DuplicateError
from domain.model.user import User

UPDATABLE_FIELDS = {'email', 'full_name', 'password_hash', 'avatar', 'cover_image', 'refresh_token'}


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}
        self.fail_updates = False

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str = '',
    ) -> User | None:
        if any(u.username == username or u.email == email for u in self.store.values()):
            raise DuplicateError("User with email or username already exists")

        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        user = User(
            id=user_id,
            username=username,
            email=email,
            full_name=full_name,
            avatar=avatar,
            cover_image=cover_image,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
        )
        self.store[user_id] = user
        return replace(user)

    def update(self, user_id: str, **fields) -> User | None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")

        user = self.store.get(user_id)
        if not user or self.fail_updates:
            return None

        new_email = fields.get('email')
        if new_email and any(u.email == new_email and u.id != user_id for u in self.store.values()):
            raise DuplicateError("Email already registered")

        updated = replace(user, **fields, updated_at=datetime.now(timezone.utc))
        self.store[user_id] = updated
        return replace(updated)

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        user = self.store.get(user_id)
        return replace(user) if user else None

    def get_by_username(self, username: str) -> User | None:
        return self.find_by_username_or_email(username, None)

    def get_by_email(self, email: str) -> User | None:
        return self.find_by_username_or_email(None, email)

    def find_by_username_or_email(self, username: str | None, email: str | None) -> User | None:
        for user in self.store.values():
            if (username and user.username == username) or (email and user.email == email):
                return replace(user)
        return None
