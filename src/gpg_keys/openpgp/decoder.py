"""Key ring reader: armored public key block to ``Entity`` objects.

Packet parsing and signature checks are done by PGPy. On top of that the
reader enforces what the store needs before it will hold a key:

* the block is a ``PGP PUBLIC KEY BLOCK`` with a matching checksum
* no secret key material
* every user ID carries a self-certification made by the primary key
* every subkey carries a binding signature made by the primary key
"""

from __future__ import annotations

import base64
import binascii
import logging
import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from pgpy import PGPKey, PGPSignature, PGPUID
from pgpy.constants import SignatureType
from pgpy.errors import PGPError
from pgpy.packet import Key, Packet

from gpg_keys.errors.key_errors import MalformedKeyError

logger = logging.getLogger(__name__)

PUBLIC_KEY_BLOCK = "PUBLIC KEY BLOCK"

_CERTIFICATIONS = frozenset(
    {
        SignatureType.Generic_Cert,
        SignatureType.Persona_Cert,
        SignatureType.Casual_Cert,
        SignatureType.Positive_Cert,
    }
)

# PGPy reports malformed packet streams through several exception types
_PARSE_ERRORS = (
    PGPError,
    ValueError,
    TypeError,
    KeyError,
    IndexError,
    AttributeError,
    StopIteration,
    NotImplementedError,
)


@dataclass(frozen=True)
class Identity:
    """A user ID claim carried by a key.

    Attributes:
        raw: The user ID string as found in the key.
        name: Display name part.
        comment: Parenthesised comment, empty when absent.
        email: Bracketed email address, or None if the user ID has none.
    """

    raw: str
    name: str
    comment: str = ""
    email: str | None = None


@dataclass(frozen=True)
class PublicKey:
    """A primary key or subkey with the metadata the store keeps."""

    key_id: str
    fingerprint: str
    algorithm: int
    created: datetime
    expires: datetime | None
    key_flags: int | None
    is_subkey: bool
    packet: bytes

    @property
    def content(self) -> str:
        """Base64 encoding of the serialized key packet."""
        return base64.b64encode(self.packet).decode("ascii")


@dataclass
class Entity:
    """One transferable public key: primary key, subkeys and identities."""

    primary_key: PublicKey
    subkeys: list[PublicKey] = field(default_factory=list)
    identities: list[Identity] = field(default_factory=list)


def _identity(uid: PGPUID) -> Identity:
    return Identity(raw=uid.userid, name=uid.name, comment=uid.comment, email=uid.email or None)


def parse_identity(raw: str) -> Identity:
    """Split a ``Name (comment) <email>`` user ID into its parts."""
    return _identity(PGPUID.new(raw))


def _key_id(key: PGPKey) -> str:
    return key.fingerprint.keyid.upper()


def _public_key(key: PGPKey, signature: PGPSignature | None) -> PublicKey:
    expires: datetime | None = None
    key_flags: int | None = None
    if signature is not None:
        if signature.key_flags:
            key_flags = sum(int(flag) for flag in signature.key_flags)
        if signature.key_expiration:
            expires = key.created + signature.key_expiration
    return PublicKey(
        key_id=_key_id(key),
        fingerprint=str(key.fingerprint).replace(" ", "").upper(),
        algorithm=int(key.key_algorithm),
        created=key.created,
        expires=expires,
        key_flags=key_flags,
        is_subkey=not key.is_primary,
        packet=bytes(key._key.__bytearray__()),
    )


def _self_signed(primary: PGPKey, subject: PGPKey | PGPUID, sig: PGPSignature) -> bool:
    """True when *sig* was made by *primary* over *subject* and checks out."""
    try:
        if (sig.signer or "").upper() != _key_id(primary):
            return False
        return bool(primary.verify(subject, sig))
    except (PGPError, IndexError, KeyError, NotImplementedError):
        return False


def _latest_valid(
    primary: PGPKey,
    subject: PGPKey | PGPUID,
    signatures: Iterable[PGPSignature],
    types: Iterable[SignatureType],
) -> PGPSignature | None:
    wanted = set(types)
    valid = [
        sig
        for sig in signatures
        if sig.type in wanted and _self_signed(primary, subject, sig)
    ]
    if not valid:
        return None
    return max(valid, key=lambda sig: sig.created)


def _build_entity(key: PGPKey) -> Entity:
    primary_id = _key_id(key)
    if not key.is_public or any(not sub.is_public for sub in key.subkeys.values()):
        raise MalformedKeyError("secret key material is not accepted")
    if key.is_expired:
        raise MalformedKeyError(f"key {primary_id} expired at {key.expires_at.isoformat()}")

    certified: list[tuple[PGPUID, PGPSignature]] = []
    for uid in key.userids:
        sig = _latest_valid(key, uid, uid.__sig__, _CERTIFICATIONS)
        if sig is None:
            raise MalformedKeyError(
                f"user id {uid.userid!r} is not self-certified by key {primary_id}"
            )
        certified.append((uid, sig))

    if certified:
        _, primary_sig = max(certified, key=lambda pair: (pair[0].is_primary, pair[1].created))
    else:
        primary_sig = _latest_valid(key, key, key.__sig__, [SignatureType.DirectlyOnKey])

    subkeys: list[PublicKey] = []
    for keyid, subkey in key.subkeys.items():
        if keyid.upper() == primary_id:
            raise MalformedKeyError("subkey shares the primary key id")
        binding = _latest_valid(key, subkey, subkey.__sig__, [SignatureType.Subkey_Binding])
        if binding is None:
            raise MalformedKeyError(f"subkey {keyid.upper()} has no valid binding signature")
        subkeys.append(_public_key(subkey, binding))

    return Entity(
        primary_key=_public_key(key, primary_sig),
        subkeys=subkeys,
        identities=[_identity(uid) for uid, _ in certified],
    )


def _unarmor(text: str) -> bytes:
    try:
        unarmored = PGPKey.ascii_unarmor(text)
    except (PGPError, ValueError, TypeError) as exc:
        raise MalformedKeyError("no armored PGP block found") from exc
    block_type = unarmored["magic"]
    if block_type is None:
        raise MalformedKeyError("no armored PGP block found")
    if block_type != PUBLIC_KEY_BLOCK:
        raise MalformedKeyError(f"expected a PGP {PUBLIC_KEY_BLOCK}, got {block_type}")
    body = bytes(unarmored["body"])
    crc = unarmored["crc"]
    if crc is not None and PGPKey.crc24(body) != crc:
        raise MalformedKeyError("armor checksum mismatch")
    return body


def read_key_ring(text: str) -> list[Entity]:
    """Parse and check every entity in an armored public key block.

    Raises:
        MalformedKeyError: If the text is not an armored public key block,
            holds secret key material, contains no primary key, or carries
            a user ID or subkey without a valid self-signature.
    """
    # PGPy warns on every verification about checks it leaves to callers
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        data = _unarmor(text)
        try:
            first, others = PGPKey.from_blob(data)
            if first._key is None:
                raise MalformedKeyError("key block contains no public key")
            # Depending on the PGPy release, ``others`` may or may not include ``first``
            found = [first, *(key for key in others.values() if key is not first)]
            return [_build_entity(key) for key in found]
        except _PARSE_ERRORS as exc:
            raise MalformedKeyError(f"key block could not be parsed: {exc}") from exc


def read_armored_key(text: str) -> Entity:
    """Parse an armored block and return its first entity."""
    entities = read_key_ring(text)
    if len(entities) > 1:
        logger.warning(
            "armored block holds %d keys; only %s is used",
            len(entities),
            entities[0].primary_key.key_id,
        )
    return entities[0]


def decode_key_content(content: str) -> PublicKey:
    """Rebuild a ``PublicKey`` from the base64 ``content`` of a stored record.

    Expiry and key flags live in signatures, which are not stored, so the
    returned key has neither.

    Raises:
        MalformedKeyError: If *content* is not a single public key packet.
    """
    try:
        data = bytearray(base64.b64decode(content, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise MalformedKeyError("key content is not valid base64") from exc
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            packet = Packet(data) if data else None
        except _PARSE_ERRORS as exc:
            raise MalformedKeyError(f"key content could not be parsed: {exc}") from exc
        # Packet() consumes what it reads; anything left is a second packet
        if not isinstance(packet, Key) or data:
            raise MalformedKeyError("key content must hold exactly one key packet")
        key = PGPKey()
        key |= packet
    if not key.is_public:
        raise MalformedKeyError("secret key material is not accepted")
    return _public_key(key, None)
