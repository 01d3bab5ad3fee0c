"""Typed errors raised by the key ingestion pipeline and the key store.

Every error carries the HTTP status and the machine-readable code an API
layer answers with. Both are fixed per class, so a handler needs only
``exc.status_code`` and ``exc.code`` to build its response.
"""

from __future__ import annotations


class GPGKeyError(Exception):
    """Base class for the errors the key store reports to its callers."""

    status_code = 500
    code = "gpg-key-error"
    default_message = "key store error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedKeyError(GPGKeyError):
    """Armored text does not decode to a usable, self-signed public key."""

    status_code = 422
    code = "malformed-key"
    default_message = "malformed armored key"


class UnverifiedIdentityError(GPGKeyError):
    """A key identity has no verified email address on the owning account."""

    status_code = 422
    code = "unverified-identity"

    def __init__(self, identity: str | None, message: str | None = None) -> None:
        if message is None:
            if identity is None:
                message = "key carries no identity"
            else:
                message = f"identity {identity!r} is not a verified email of the owner"
        super().__init__(message)
        self.identity = identity


class KeyIDConflictError(GPGKeyError):
    """The key ID is already registered (by any owner)."""

    status_code = 409
    code = "key-id-conflict"

    def __init__(self, key_id: str) -> None:
        super().__init__(f"key id {key_id} is already registered")
        self.key_id = key_id


class KeyNotFoundError(GPGKeyError):
    """Referenced key record does not exist."""

    status_code = 404
    code = "key-not-found"

    def __init__(self, id_: int) -> None:
        super().__init__(f"gpg key {id_} not found")
        self.id = id_


class AccessDeniedError(GPGKeyError):
    """Requestor is neither the key owner nor an administrator."""

    status_code = 403
    code = "access-denied"
    default_message = "you do not have access to this key"


class EmailAlreadyUsedError(GPGKeyError):
    """The email address is registered to an account already."""

    status_code = 409
    code = "email-already-used"
    default_message = "email address is already used"


class StorageError(GPGKeyError):
    """Opaque failure of the underlying transactional store."""

    code = "storage-error"
    default_message = "storage operation failed"
