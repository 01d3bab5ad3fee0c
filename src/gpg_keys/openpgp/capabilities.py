"""Capability flags — what a key may be used for.

Derived from the public-key algorithm and, when a self-signature declares
them, the key flags subpacket (RFC 4880 §5.2.3.21). A key that declares
flags gets a capability only if both the flag is set and its algorithm
can perform the operation. A key without declared flags falls back to
the algorithm alone.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gpg_keys.openpgp.decoder import PublicKey


class PublicKeyAlgorithm(enum.IntEnum):
    """Public-key algorithm identifiers (RFC 4880 §9.1, RFC 9580 §9.1)."""

    RSA = 1
    RSA_ENCRYPT_ONLY = 2
    RSA_SIGN_ONLY = 3
    ELGAMAL = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    EDDSA_LEGACY = 22
    X25519 = 25
    X448 = 26
    ED25519 = 27
    ED448 = 28


class KeyFlag(enum.IntFlag):
    """Key flags subpacket bits."""

    CERTIFY = 0x01
    SIGN = 0x02
    ENCRYPT_COMMUNICATIONS = 0x04
    ENCRYPT_STORAGE = 0x08


_SIGNING_ALGORITHMS = frozenset(
    {
        PublicKeyAlgorithm.RSA,
        PublicKeyAlgorithm.RSA_SIGN_ONLY,
        PublicKeyAlgorithm.DSA,
        PublicKeyAlgorithm.ECDSA,
        PublicKeyAlgorithm.EDDSA_LEGACY,
        PublicKeyAlgorithm.ED25519,
        PublicKeyAlgorithm.ED448,
    }
)

_ENCRYPTING_ALGORITHMS = frozenset(
    {
        PublicKeyAlgorithm.RSA,
        PublicKeyAlgorithm.RSA_ENCRYPT_ONLY,
        PublicKeyAlgorithm.ELGAMAL,
        PublicKeyAlgorithm.ECDH,
        PublicKeyAlgorithm.X25519,
        PublicKeyAlgorithm.X448,
    }
)


def algorithm_can_sign(algorithm: int) -> bool:
    return algorithm in _SIGNING_ALGORITHMS


def algorithm_can_encrypt(algorithm: int) -> bool:
    return algorithm in _ENCRYPTING_ALGORITHMS


@dataclass(frozen=True)
class Capabilities:
    """The four capability flags stored on every key record."""

    can_sign: bool = False
    can_encrypt_comms: bool = False
    can_encrypt_storage: bool = False
    can_certify: bool = False


def derive_capabilities(key: PublicKey) -> Capabilities:
    """Compute the capability flags of a primary key or subkey.

    Never fails: unknown algorithms yield no capabilities.
    """
    can_sign = algorithm_can_sign(key.algorithm)
    can_encrypt = algorithm_can_encrypt(key.algorithm)

    if key.key_flags is None:
        return Capabilities(
            can_sign=can_sign,
            can_encrypt_comms=can_encrypt,
            can_encrypt_storage=can_encrypt,
            can_certify=can_sign,
        )

    flags = KeyFlag(key.key_flags & 0x0F)
    return Capabilities(
        can_sign=can_sign and KeyFlag.SIGN in flags,
        can_encrypt_comms=can_encrypt and KeyFlag.ENCRYPT_COMMUNICATIONS in flags,
        can_encrypt_storage=can_encrypt and KeyFlag.ENCRYPT_STORAGE in flags,
        can_certify=can_sign and KeyFlag.CERTIFY in flags,
    )
