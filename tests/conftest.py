"""Shared test fixtures for the gpg-keys test suite.

OpenPGP keys are generated with PGPy, so no gpg binary is needed. Key
packets are small Ed25519 and Curve25519 keys unless a test asks for RSA.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import pytest
from pgpy import PGPKey, PGPUID
from pgpy.constants import (
    CompressionAlgorithm,
    EllipticCurveOID,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from gpg_keys.config.settings import AppConfig, DatabaseConfig, DatabaseEngine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from datetime import timedelta
    from pathlib import Path

    from gpg_keys.engine.client import GPGKeysEngine

CREATED = datetime(2020, 9, 13, 12, 26, 40, tzinfo=timezone.utc)

USAGE_CERTIFY_SIGN = frozenset({KeyFlags.Certify, KeyFlags.Sign})
USAGE_SIGN = frozenset({KeyFlags.Sign})
USAGE_ENCRYPT = frozenset({KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage})

_KEY_SIZES = {
    PubKeyAlgorithm.EdDSA: EllipticCurveOID.Ed25519,
    PubKeyAlgorithm.ECDH: EllipticCurveOID.Curve25519,
    PubKeyAlgorithm.RSAEncryptOrSign: 2048,
}


def new_key(algorithm: PubKeyAlgorithm = PubKeyAlgorithm.EdDSA) -> PGPKey:
    return PGPKey.new(algorithm, _KEY_SIZES[algorithm], created=CREATED)


def retagged(packet: bytes, tag: int) -> bytes:
    """Rewrite the tag of a single packet, keeping its header format."""
    first = packet[0]
    if first & 0x40:
        return bytes([0xC0 | tag]) + packet[1:]
    return bytes([0x80 | (tag << 2) | (first & 0x03)]) + packet[1:]


def user_id_packet(user_id: str) -> bytes:
    """A bare user ID packet with no certification."""
    return bytes(PGPUID.new(user_id)._uid.__bytearray__())


def armor(data: bytes, block_type: str = "PUBLIC KEY BLOCK") -> str:
    """Armor raw packet bytes as they are, without re-serializing them."""
    body = base64.b64encode(data).decode("ascii")
    lines = [body[i : i + 64] for i in range(0, len(body), 64)]
    crc = base64.b64encode(PGPKey.crc24(data).to_bytes(3, "big")).decode("ascii")
    return "\n".join(
        [
            f"-----BEGIN PGP {block_type}-----",
            "",
            *lines,
            f"={crc}",
            f"-----END PGP {block_type}-----",
            "",
        ]
    )


# ---------------------------------------------------------------------------
# Key factory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubkeySpec:
    algorithm: PubKeyAlgorithm = PubKeyAlgorithm.ECDH
    usage: frozenset[KeyFlags] = USAGE_ENCRYPT


@dataclass
class GeneratedKey:
    """A freshly generated transferable key and its public export."""

    secret: PGPKey
    public: PGPKey
    armored: str
    data: bytes
    key_id: str
    subkey_ids: list[str] = field(default_factory=list)


class KeyFactory:
    """Builds armored OpenPGP public keys for tests."""

    def build(
        self,
        user_ids: Sequence[str] = ("Alice <a@example.com>",),
        subkeys: Sequence[SubkeySpec] = (SubkeySpec(),),
        *,
        algorithm: PubKeyAlgorithm = PubKeyAlgorithm.EdDSA,
        usage: frozenset[KeyFlags] | None = USAGE_CERTIFY_SIGN,
        key_expiration: timedelta | None = None,
    ) -> GeneratedKey:
        key = new_key(algorithm)
        for index, user_id in enumerate(user_ids):
            key.add_uid(
                PGPUID.new(user_id),
                usage=set(usage) if usage is not None else None,
                hashes=[HashAlgorithm.SHA256],
                ciphers=[SymmetricKeyAlgorithm.AES256],
                compression=[CompressionAlgorithm.Uncompressed],
                key_expiration=key_expiration,
                primary=True if index == 0 else None,
            )
        for spec in subkeys:
            key.add_subkey(
                new_key(spec.algorithm), usage=set(spec.usage), hash=HashAlgorithm.SHA256
            )

        public = key.pubkey
        return GeneratedKey(
            secret=key,
            public=public,
            armored=str(public),
            data=bytes(public),
            key_id=public.fingerprint.keyid,
            subkey_ids=list(public.subkeys),
        )


@pytest.fixture
def keys() -> KeyFactory:
    """Provide an OpenPGP key factory."""
    return KeyFactory()


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Provide a test AppConfig backed by a file SQLite database.

    A file database gives every session its own connection, so concurrent
    operations see real transaction isolation.
    """
    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn=f"sqlite+aiosqlite:///{tmp_path / 'gpg_keys.db'}",
        ),
    )


@pytest.fixture
async def engine(app_config: AppConfig) -> AsyncIterator[GPGKeysEngine]:
    """Provide an initialized engine with owner 42 verified for a@example.com."""
    from gpg_keys.engine.client import GPGKeysEngine

    eng = GPGKeysEngine(app_config)
    await eng.initialize()
    await eng.email_address_service.add_email(42, "a@example.com", is_activated=True)
    yield eng
    await eng.close()
