"""Tests for the key ring reader."""

from __future__ import annotations

import base64
from datetime import timedelta

import pytest
from pgpy import PGPKey, PGPUID
from pgpy.constants import HashAlgorithm, KeyFlags, PubKeyAlgorithm

from conftest import (
    CREATED,
    USAGE_SIGN,
    KeyFactory,
    SubkeySpec,
    armor,
    new_key,
    retagged,
    user_id_packet,
)
from gpg_keys.errors import MalformedKeyError
from gpg_keys.openpgp.decoder import (
    decode_key_content,
    parse_identity,
    read_armored_key,
    read_key_ring,
)


def _packet(tag: int, body: bytes) -> bytes:
    """New-format packet with a one-octet length."""
    return bytes([0xC0 | tag, len(body)]) + body


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


class TestParseIdentity:
    def test_name_and_email(self) -> None:
        identity = parse_identity("Alice <a@example.com>")
        assert identity.name == "Alice"
        assert identity.comment == ""
        assert identity.email == "a@example.com"

    def test_comment(self) -> None:
        identity = parse_identity("Alice Liddell (work) <alice@corp.example.org>")
        assert identity.name == "Alice Liddell"
        assert identity.comment == "work"
        assert identity.email == "alice@corp.example.org"

    def test_no_email(self) -> None:
        identity = parse_identity("Alice Liddell")
        assert identity.email is None
        assert identity.name == "Alice Liddell"
        assert identity.raw == "Alice Liddell"

    def test_unbracketed_email_not_matched(self) -> None:
        assert parse_identity("a@example.com").email is None

    def test_case_preserved(self) -> None:
        assert parse_identity("A <Alice@Example.com>").email == "Alice@Example.com"


# ---------------------------------------------------------------------------
# Key ring reading
# ---------------------------------------------------------------------------


class TestReadArmoredKey:
    def test_primary_subkeys_identities(self, keys: KeyFactory) -> None:
        generated = keys.build(
            user_ids=["Alice <a@example.com>", "Alice (home) <alice@home.example>"],
            subkeys=[SubkeySpec(), SubkeySpec(algorithm=PubKeyAlgorithm.EdDSA, usage=USAGE_SIGN)],
        )
        entity = read_armored_key(generated.armored)

        assert entity.primary_key.key_id == generated.key_id
        assert not entity.primary_key.is_subkey
        assert sorted(s.key_id for s in entity.subkeys) == sorted(generated.subkey_ids)
        assert all(s.is_subkey for s in entity.subkeys)
        assert sorted(i.email for i in entity.identities) == [
            "a@example.com",
            "alice@home.example",
        ]

    def test_fingerprint(self, keys: KeyFactory) -> None:
        generated = keys.build()
        entity = read_armored_key(generated.armored)
        assert len(entity.primary_key.fingerprint) == 40
        assert entity.primary_key.fingerprint.endswith(generated.key_id)

    def test_created_time(self, keys: KeyFactory) -> None:
        entity = read_armored_key(keys.build().armored)
        assert entity.primary_key.created == CREATED

    def test_no_expiry_by_default(self, keys: KeyFactory) -> None:
        entity = read_armored_key(keys.build().armored)
        assert entity.primary_key.expires is None
        assert entity.subkeys[0].expires is None

    def test_expiry_from_self_certification(self, keys: KeyFactory) -> None:
        lifetime = timedelta(days=365 * 40)
        entity = read_armored_key(keys.build(key_expiration=lifetime).armored)
        assert entity.primary_key.expires == CREATED + lifetime

    def test_expired_key_rejected(self, keys: KeyFactory) -> None:
        generated = keys.build(key_expiration=timedelta(days=30))
        with pytest.raises(MalformedKeyError, match="expired"):
            read_armored_key(generated.armored)

    def test_key_flags(self, keys: KeyFactory) -> None:
        entity = read_armored_key(keys.build().armored)
        assert entity.primary_key.key_flags == 0x03
        assert entity.subkeys[0].key_flags == 0x0C

    def test_undeclared_flags_are_none(self, keys: KeyFactory) -> None:
        entity = read_armored_key(keys.build(usage=None, subkeys=[]).armored)
        assert entity.primary_key.key_flags is None

    def test_rsa_algorithm(self, keys: KeyFactory) -> None:
        generated = keys.build(algorithm=PubKeyAlgorithm.RSAEncryptOrSign, subkeys=[])
        assert read_armored_key(generated.armored).primary_key.algorithm == 1

    def test_content_is_base64_packet(self, keys: KeyFactory) -> None:
        generated = keys.build()
        entity = read_armored_key(generated.armored)
        primary_packet = base64.b64decode(entity.primary_key.content)
        subkey_packet = base64.b64decode(entity.subkeys[0].content)
        assert generated.data.startswith(primary_packet)
        assert subkey_packet in generated.data

    def test_no_identities(self, keys: KeyFactory) -> None:
        entity = read_armored_key(keys.build(user_ids=[]).armored)
        assert entity.identities == []

    def test_primary_user_id_signature_wins(self) -> None:
        key = new_key()
        key.add_uid(
            PGPUID.new("Primary", email="p@example.com"),
            usage={KeyFlags.Certify},
            hashes=[HashAlgorithm.SHA256],
            primary=True,
        )
        key.add_uid(
            PGPUID.new("Other", email="o@example.com"),
            usage={KeyFlags.Certify, KeyFlags.Sign},
            hashes=[HashAlgorithm.SHA256],
        )
        entity = read_armored_key(str(key.pubkey))
        assert entity.primary_key.key_flags == 0x01

    def test_direct_key_signature_fallback(self) -> None:
        key = new_key()
        key |= key.certify(key, usage={KeyFlags.Certify, KeyFlags.Sign}, hash=HashAlgorithm.SHA256)
        entity = read_armored_key(str(key.pubkey))
        assert entity.identities == []
        assert entity.primary_key.key_flags == 0x03

    def test_multiple_entities_first_used(self, keys: KeyFactory) -> None:
        first, second = keys.build(), keys.build()
        text = armor(first.data + second.data)
        assert [e.primary_key.key_id for e in read_key_ring(text)] == [
            first.key_id,
            second.key_id,
        ]
        assert read_armored_key(text).primary_key.key_id == first.key_id

    def test_leading_marker_packet_skipped(self, keys: KeyFactory) -> None:
        generated = keys.build()
        text = armor(_packet(10, b"PGP") + generated.data)
        assert read_armored_key(text).primary_key.key_id == generated.key_id


class TestSelfSignatures:
    """User IDs and subkeys must be signed by the primary key they sit under."""

    def test_unsigned_user_id_on_someone_elses_key(self, keys: KeyFactory) -> None:
        victim = keys.build(subkeys=[])
        primary_packet = read_armored_key(victim.armored).primary_key.packet
        forged = armor(primary_packet + user_id_packet("Mallory <m@evil.test>"))
        with pytest.raises(MalformedKeyError, match="not self-certified"):
            read_armored_key(forged)

    def test_unsigned_user_id_added_to_signed_key(self, keys: KeyFactory) -> None:
        victim = keys.build(subkeys=[])
        forged = armor(victim.data + user_id_packet("Mallory <m@evil.test>"))
        with pytest.raises(MalformedKeyError, match="Mallory"):
            read_armored_key(forged)

    def test_certification_moved_to_another_user_id(self, keys: KeyFactory) -> None:
        victim = keys.build(subkeys=[])
        primary_packet = read_armored_key(victim.armored).primary_key.packet
        certification = bytes(victim.public.userids[0].selfsig)
        forged = armor(primary_packet + user_id_packet("Mallory <m@evil.test>") + certification)
        with pytest.raises(MalformedKeyError, match="not self-certified"):
            read_armored_key(forged)

    def test_unbound_subkey_rejected(self, keys: KeyFactory) -> None:
        victim, stranger = keys.build(subkeys=[]), keys.build()
        stray = read_armored_key(stranger.armored).subkeys[0]
        forged = armor(victim.data + stray.packet)
        with pytest.raises(MalformedKeyError, match="no valid binding"):
            read_armored_key(forged)

    def test_subkey_bound_by_another_key_rejected(self, keys: KeyFactory) -> None:
        victim, stranger = keys.build(subkeys=[]), keys.build()
        subkey = next(iter(stranger.public.subkeys.values()))
        stray = read_armored_key(stranger.armored).subkeys[0]
        binding = b"".join(bytes(sig) for sig in subkey.__sig__)
        forged = armor(victim.data + stray.packet + binding)
        with pytest.raises(MalformedKeyError, match="no valid binding"):
            read_armored_key(forged)

    def test_subkey_reusing_primary_key_id(self, keys: KeyFactory) -> None:
        generated = keys.build(subkeys=[])
        primary_packet = read_armored_key(generated.armored).primary_key.packet
        forged = armor(generated.data + retagged(primary_packet, 14))
        with pytest.raises(MalformedKeyError, match="shares the primary"):
            read_armored_key(forged)


class TestMalformedKeys:
    def test_garbage(self) -> None:
        with pytest.raises(MalformedKeyError, match="no armored PGP block"):
            read_armored_key("hello world")

    def test_private_key_block(self, keys: KeyFactory) -> None:
        text = str(keys.build().secret)
        with pytest.raises(MalformedKeyError, match="expected a PGP PUBLIC KEY BLOCK"):
            read_armored_key(text)

    def test_secret_key_packets_in_public_block(self, keys: KeyFactory) -> None:
        text = armor(bytes(keys.build().secret))
        with pytest.raises(MalformedKeyError, match="secret key"):
            read_armored_key(text)

    def test_checksum_mismatch(self, keys: KeyFactory) -> None:
        data = keys.build().data
        lines = armor(data).splitlines()
        # Flip the checksum line to the CRC of different bytes
        lines[-2] = "=" + base64.b64encode(
            PGPKey.crc24(data + b"\x00").to_bytes(3, "big")
        ).decode("ascii")
        with pytest.raises(MalformedKeyError, match="checksum"):
            read_armored_key("\n".join(lines))

    def test_must_start_with_primary_key(self, keys: KeyFactory) -> None:
        generated = keys.build()
        data = user_id_packet("A <a@example.com>") + generated.data
        with pytest.raises(MalformedKeyError, match="could not be parsed"):
            read_armored_key(armor(data))

    def test_truncated_packet_stream(self, keys: KeyFactory) -> None:
        with pytest.raises(MalformedKeyError):
            read_armored_key(armor(keys.build().data[:-3]))


class TestDecodeKeyContent:
    def test_round_trip_key_id(self, keys: KeyFactory) -> None:
        generated = keys.build()
        entity = read_armored_key(generated.armored)
        decoded = decode_key_content(entity.primary_key.content)
        assert decoded.key_id == generated.key_id
        assert decoded.created == entity.primary_key.created
        assert decoded.key_flags is None

    def test_subkey_content(self, keys: KeyFactory) -> None:
        generated = keys.build()
        entity = read_armored_key(generated.armored)
        decoded = decode_key_content(entity.subkeys[0].content)
        assert decoded.key_id == generated.subkey_ids[0]
        assert decoded.is_subkey

    def test_invalid_base64(self) -> None:
        with pytest.raises(MalformedKeyError, match="base64"):
            decode_key_content("***")

    def test_multiple_packets(self, keys: KeyFactory) -> None:
        content = base64.b64encode(keys.build().data).decode()
        with pytest.raises(MalformedKeyError, match="exactly one"):
            decode_key_content(content)
