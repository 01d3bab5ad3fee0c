"""Error hierarchy for gpg-keys."""

from gpg_keys.errors.key_errors import (
    AccessDeniedError,
    EmailAlreadyUsedError,
    GPGKeyError,
    KeyIDConflictError,
    KeyNotFoundError,
    MalformedKeyError,
    StorageError,
    UnverifiedIdentityError,
)

__all__ = [
    "AccessDeniedError",
    "EmailAlreadyUsedError",
    "GPGKeyError",
    "KeyIDConflictError",
    "KeyNotFoundError",
    "MalformedKeyError",
    "StorageError",
    "UnverifiedIdentityError",
]
