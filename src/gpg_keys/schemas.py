"""Response schemas for GPG keys.

These are the API-layer shapes a host service renders. They do not
inherit from the ORM models; ``to_gpg_key_response`` maps a
``KeyRecord`` onto them.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from gpg_keys.engine.records import KeyRecord


class GPGKeyEmailResponse(BaseModel):
    """An email address bound to a key."""

    email: str
    verified: bool = False


class GPGKeyResponse(BaseModel):
    """A primary key or subkey."""

    id: int
    primary_key_id: str = ""
    key_id: str
    public_key: str
    emails: list[GPGKeyEmailResponse] = Field(default_factory=list)
    subkeys: list[GPGKeyResponse] = Field(default_factory=list)
    can_sign: bool = False
    can_encrypt_comms: bool = False
    can_encrypt_storage: bool = False
    can_certify: bool = False
    created_at: datetime
    expires_at: datetime | None = None
    added_at: datetime


def to_gpg_key_response(record: KeyRecord) -> GPGKeyResponse:
    """Convert a ``KeyRecord`` (and its subkeys) to the API response shape.

    Every stored email was matched against a verified address at insert
    time, so all are reported as verified.
    """
    return GPGKeyResponse(
        id=record.id,
        primary_key_id=record.primary_key_id or "",
        key_id=record.key_id,
        public_key=record.content,
        emails=[GPGKeyEmailResponse(email=email, verified=True) for email in record.emails],
        subkeys=[to_gpg_key_response(subkey) for subkey in record.subkeys],
        can_sign=record.can_sign,
        can_encrypt_comms=record.can_encrypt_comms,
        can_encrypt_storage=record.can_encrypt_storage,
        can_certify=record.can_certify,
        created_at=record.created,
        expires_at=record.expires,
        added_at=record.added,
    )
