from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when the caller cannot be authenticated."""


class InvalidCredentials(AuthenticationError):
    """Unknown username or wrong password (deliberately indistinguishable)."""


class TokenExpired(AuthenticationError):
    pass


class TokenMalformed(AuthenticationError):
    """Token cannot be decoded or its signature does not match."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class SessionStateError(DomainError):
    """Raised when a work-session transition is not allowed in the current state."""


class AlreadyCheckedIn(SessionStateError):
    pass


class NoOpenSession(SessionStateError):
    pass


class AlreadyIdle(SessionStateError):
    pass


class NotIdle(SessionStateError):
    pass


class InvalidTimestamp(SessionStateError):
    """Caller-supplied time goes backwards relative to the session's last event."""


class PersistenceError(Exception):
    """Storage unavailable or rejected the write."""


class ConstraintViolation(PersistenceError):
    def __init__(self, message: str, *, errno: int | None = None):
        super().__init__(message)
        self.errno = errno


class ConcurrentUpdateError(PersistenceError):
    """A conditional write matched no row because another writer got there first."""
