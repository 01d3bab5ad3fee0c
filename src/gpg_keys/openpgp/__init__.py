"""OpenPGP public key parsing: key ring reader and capabilities."""

from gpg_keys.openpgp.capabilities import Capabilities, derive_capabilities
from gpg_keys.openpgp.decoder import (
    Entity,
    Identity,
    PublicKey,
    decode_key_content,
    parse_identity,
    read_armored_key,
    read_key_ring,
)

__all__ = [
    "Capabilities",
    "Entity",
    "Identity",
    "PublicKey",
    "decode_key_content",
    "derive_capabilities",
    "parse_identity",
    "read_armored_key",
    "read_key_ring",
]
