"""KeyRecord — in-memory view of a stored key and its row conversions.

Rows keep times as integer epoch seconds; records carry timezone-aware
``datetime`` values. The store calls these conversions explicitly on
load and save.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from gpg_keys.engine.models.gpg_key import GPGKey

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gpg_keys.openpgp.capabilities import Capabilities
    from gpg_keys.openpgp.decoder import PublicKey


@dataclass
class KeyRecord:
    """A primary key or subkey as returned by the key service.

    Attributes:
        id: Store-assigned identifier.
        owner_id: Owning account.
        key_id: 64-bit OpenPGP key ID, 16 upper-case hex characters.
        primary_key_id: None for a primary key, else the primary's key ID.
        content: Base64 serialized public key packet.
        created: Creation time declared by the key.
        expires: Expiry declared by the key, None if it never expires.
        added: When the record was stored.
        emails: Verified addresses bound to the key (primary keys only).
        subkeys: Subkey records (primary keys only).
    """

    id: int
    owner_id: int
    key_id: str
    primary_key_id: str | None
    content: str
    created: datetime
    expires: datetime | None
    added: datetime
    emails: list[str] = field(default_factory=list)
    subkeys: list[KeyRecord] = field(default_factory=list)
    can_sign: bool = False
    can_encrypt_comms: bool = False
    can_encrypt_storage: bool = False
    can_certify: bool = False

    @property
    def is_primary(self) -> bool:
        return self.primary_key_id is None


def to_unix(value: datetime | None) -> int | None:
    """Convert a datetime to epoch seconds; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_unix(value: int | None) -> datetime | None:
    """Convert epoch seconds to a UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def record_from_row(row: GPGKey, subkeys: Sequence[KeyRecord] = ()) -> KeyRecord:
    """Build a ``KeyRecord`` from a loaded row, attaching *subkeys*."""
    return KeyRecord(
        id=row.id,
        owner_id=row.owner_id,
        key_id=row.key_id,
        primary_key_id=row.primary_key_id,
        content=row.content,
        created=from_unix(row.created_unix),  # type: ignore[arg-type]
        expires=from_unix(row.expires_unix),
        added=from_unix(row.added_unix),  # type: ignore[arg-type]
        emails=list(row.emails or []),
        subkeys=list(subkeys),
        can_sign=row.can_sign,
        can_encrypt_comms=row.can_encrypt_comms,
        can_encrypt_storage=row.can_encrypt_storage,
        can_certify=row.can_certify,
    )


def row_from_key(
    owner_id: int,
    key: PublicKey,
    capabilities: Capabilities,
    *,
    added: datetime,
    primary_key_id: str | None = None,
    emails: Sequence[str] = (),
) -> GPGKey:
    """Build a new, unsaved ``GPGKey`` row for a decoded key."""
    return GPGKey(
        owner_id=owner_id,
        key_id=key.key_id,
        primary_key_id=primary_key_id,
        content=key.content,
        created_unix=to_unix(key.created),
        expires_unix=to_unix(key.expires),
        added_unix=to_unix(added),
        emails=list(emails),
        can_sign=capabilities.can_sign,
        can_encrypt_comms=capabilities.can_encrypt_comms,
        can_encrypt_storage=capabilities.can_encrypt_storage,
        can_certify=capabilities.can_certify,
    )
