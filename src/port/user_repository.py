from typing import Protocol
from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access."""
    def create(
        self,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str = '',
    ) -> User | None:
        """Create a new user. Return User or None if creation failed.

        Raises DuplicateError when username or email is already taken.
        """
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    def get_by_username(self, username: str) -> User | None:
        """Find a user by (case-folded) username. Return User or None if not found."""
        ...

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return User or None if not found."""
        ...

    def find_by_username_or_email(self, username: str | None, email: str | None) -> User | None:
        """Find the first user matching either username or email."""
        ...

    def update(self, user_id: str, **fields) -> User | None:
        """Set the given fields and bump updated_at. Return the updated User or None."""
        ...
