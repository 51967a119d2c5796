"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Route handlers catch them and map to appropriate HTTP status codes.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""


class ValidationError(DomainError):
    """Input violates a business validation rule."""


class AuthenticationError(DomainError):
    """Credentials or session are not acceptable."""


class TokenExpiredError(AuthenticationError):
    """Token signature is valid but its expiry has passed."""


class MalformedTokenError(AuthenticationError):
    """Token cannot be parsed or its signature does not verify."""


class TokenRevokedError(AuthenticationError):
    """Refresh token no longer matches the one persisted for the user."""


class MediaStorageError(DomainError):
    """Remote asset store call failed."""


class UploadFailedError(DomainError):
    """Upload did not succeed within the allowed attempts."""


class MalformedReferenceError(DomainError):
    """Asset URL has no path segment to derive an asset id from."""
