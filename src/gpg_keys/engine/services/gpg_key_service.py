"""Ingestion, lookup and removal of OpenPGP key hierarchies.

Pipeline for a submission:

1. decode the armored block (pure)
2. bind its identities to the owner's verified emails
3. derive capability flags for the primary key and every subkey
4. in one transaction: check key-ID uniqueness, insert the primary key,
   insert its subkeys

Steps 1-3 run before any transaction is opened. Writes are serialised by
an in-process lock so the uniqueness check and the inserts behave as one
unit; across processes the unique index on ``key_id`` has the final say.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gpg_keys.engine.binder import bind_identities
from gpg_keys.engine.models.gpg_key import GPGKey
from gpg_keys.engine.records import KeyRecord, record_from_row, row_from_key
from gpg_keys.errors.key_errors import (
    AccessDeniedError,
    GPGKeyError,
    KeyIDConflictError,
    KeyNotFoundError,
    MalformedKeyError,
    StorageError,
)
from gpg_keys.openpgp.capabilities import derive_capabilities
from gpg_keys.openpgp.decoder import read_armored_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from gpg_keys.engine.accounts import Requestor
    from gpg_keys.engine.client import GPGKeysEngine

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Report SQLAlchemy failures as an opaque ``StorageError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"{action} failed") from exc


class GPGKeyService:
    """Business logic for OpenPGP public keys.

    Exposes the four operations consumed by the API layer: ``add_key``,
    ``get_key``, ``list_keys`` and ``delete_key``.
    """

    def __init__(self, engine: GPGKeysEngine) -> None:
        self._engine = engine
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def add_key(self, owner_id: int, armored: str) -> KeyRecord:
        """Validate an armored public key and store it for *owner_id*.

        Args:
            owner_id: The account claiming the key.
            armored: Armored ``PGP PUBLIC KEY BLOCK`` text.

        Returns:
            The stored primary key record with its subkeys attached.

        Raises:
            MalformedKeyError: If the text is not a usable public key.
            UnverifiedIdentityError: If an identity is not a verified email
                of the owner.
            KeyIDConflictError: If the primary key or a subkey is already
                registered.
            StorageError: On any other database failure.
        """
        metrics = self._engine.metrics
        with metrics.track_add_key() if metrics is not None else nullcontext():
            try:
                record = await self._add_key(owner_id, armored)
            except GPGKeyError as exc:
                logger.warning("rejected gpg key for owner %d: %s", owner_id, exc.message)
                if metrics is not None:
                    metrics.record_rejection(exc.code)
                raise

        if metrics is not None:
            metrics.record_key_added(len(record.subkeys))
        logger.info(
            "added gpg key %s with %d subkeys for owner %d",
            record.key_id,
            len(record.subkeys),
            owner_id,
        )
        return record

    async def get_key(self, id_: int) -> KeyRecord:
        """Look up a key record by its ID.

        Raises:
            KeyNotFoundError: If no record has this ID.
        """
        with _storage_errors("get gpg key"):
            async with self._engine.datastore.session() as session:
                row = await session.get(GPGKey, id_)
                if row is None:
                    raise KeyNotFoundError(id_)
                records = await self._to_records(session, [row])
                return records[0]

    async def list_keys(self, owner_id: int) -> list[KeyRecord]:
        """List the primary keys of an account, oldest first, with subkeys."""
        with _storage_errors("list gpg keys"):
            async with self._engine.datastore.session() as session:
                result = await session.execute(
                    select(GPGKey)
                    .where(GPGKey.owner_id == owner_id, GPGKey.primary_key_id.is_(None))
                    .order_by(GPGKey.id)
                )
                return await self._to_records(session, list(result.scalars().all()))

    async def get_keys_by_key_id(self, key_id: str) -> list[KeyRecord]:
        """Find the records carrying an OpenPGP key ID, primary or subkey."""
        with _storage_errors("get gpg keys by key id"):
            async with self._engine.datastore.session() as session:
                result = await session.execute(
                    select(GPGKey).where(GPGKey.key_id == key_id.upper()).order_by(GPGKey.id)
                )
                return await self._to_records(session, list(result.scalars().all()))

    async def delete_key(
        self,
        requestor: Requestor,
        id_: int,
        *,
        missing_ok: bool = True,
    ) -> None:
        """Delete a key record; deleting a primary key also deletes its subkeys.

        Args:
            requestor: The acting user; must own the key or be an admin.
            id_: ID of the record to delete.
            missing_ok: If True, deleting an absent record succeeds silently.

        Raises:
            KeyNotFoundError: If the record is absent and *missing_ok* is False.
            AccessDeniedError: If the requestor may not manage the key.
        """
        async with self._write_lock:
            with _storage_errors("delete gpg key"):
                async with self._engine.datastore.transaction() as session:
                    row = await session.get(GPGKey, id_)
                    if row is None:
                        if not missing_ok:
                            raise KeyNotFoundError(id_)
                        logger.debug("gpg key %d already absent", id_)
                        return
                    if not requestor.can_manage(row.owner_id):
                        raise AccessDeniedError()

                    key_id, is_primary = row.key_id, row.primary_key_id is None
                    result = await session.execute(delete(GPGKey).where(GPGKey.id == id_))
                    deleted = result.rowcount
                    if is_primary:
                        result = await session.execute(
                            delete(GPGKey).where(GPGKey.primary_key_id == key_id)
                        )
                        deleted += result.rowcount

        if self._engine.metrics is not None:
            self._engine.metrics.record_keys_deleted(deleted)
        logger.info("deleted gpg key %s (%d records) by requestor %d", key_id, deleted, requestor.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _add_key(self, owner_id: int, armored: str) -> KeyRecord:
        limits = self._engine.config.keys
        if len(armored) > limits.max_armored_size:
            raise MalformedKeyError(
                f"armored key exceeds {limits.max_armored_size} characters"
            )

        entity = read_armored_key(armored)
        if len(entity.subkeys) > limits.max_subkeys:
            raise MalformedKeyError(f"key has more than {limits.max_subkeys} subkeys")

        addresses = await self._engine.accounts.get_email_addresses(owner_id)
        emails = bind_identities(entity.identities, addresses)

        added = datetime.now(timezone.utc)
        primary_key = entity.primary_key
        primary = row_from_key(
            owner_id,
            primary_key,
            derive_capabilities(primary_key),
            added=added,
            emails=emails,
        )
        subkeys = [
            row_from_key(
                owner_id,
                subkey,
                derive_capabilities(subkey),
                added=added,
                primary_key_id=primary_key.key_id,
            )
            for subkey in entity.subkeys
        ]
        key_ids = [primary.key_id, *(subkey.key_id for subkey in subkeys)]

        async with self._write_lock:
            try:
                async with self._engine.datastore.transaction() as session:
                    existing = await self._registered_key_id(session, key_ids)
                    if existing is not None:
                        raise KeyIDConflictError(existing)

                    session.add(primary)
                    session.add_all(subkeys)
                    await session.flush()
            except IntegrityError as exc:
                # A writer outside this process registered one of the IDs first
                with _storage_errors(f"store gpg key {primary.key_id}"):
                    async with self._engine.datastore.session() as session:
                        existing = await self._registered_key_id(session, key_ids)
                raise KeyIDConflictError(existing or primary.key_id) from exc
            except SQLAlchemyError as exc:
                raise StorageError(f"store gpg key {primary.key_id} failed") from exc

        return record_from_row(primary, [record_from_row(row) for row in subkeys])

    async def _registered_key_id(
        self,
        session: AsyncSession,
        key_ids: Sequence[str],
    ) -> str | None:
        """Return the first of *key_ids* already stored, if any."""
        result = await session.execute(
            select(GPGKey.key_id)
            .where(GPGKey.key_id.in_(key_ids))
            .order_by(GPGKey.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _to_records(
        self,
        session: AsyncSession,
        rows: Sequence[GPGKey],
    ) -> list[KeyRecord]:
        """Convert rows to records, attaching the subkeys of primary rows."""
        primary_ids = [row.key_id for row in rows if row.primary_key_id is None]
        subkeys: dict[str, list[KeyRecord]] = {}
        if primary_ids:
            result = await session.execute(
                select(GPGKey)
                .where(GPGKey.primary_key_id.in_(primary_ids))
                .order_by(GPGKey.id)
            )
            for sub in result.scalars().all():
                subkeys.setdefault(sub.primary_key_id, []).append(record_from_row(sub))  # type: ignore[arg-type]
        return [
            record_from_row(row, subkeys.get(row.key_id, []) if row.primary_key_id is None else ())
            for row in rows
        ]
