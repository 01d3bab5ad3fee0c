"""Account email addresses, the default directory for identity binding.

Stores the email addresses of each account together with their
verification state, and answers the key service's lookups.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gpg_keys.engine.models.email_address import EmailAddress
from gpg_keys.errors.key_errors import EmailAlreadyUsedError

if TYPE_CHECKING:
    from gpg_keys.engine.client import GPGKeysEngine

logger = logging.getLogger(__name__)


class EmailAddressService:
    """Business logic for account email addresses.

    Implements the ``AccountDirectory`` protocol consumed by the key service.
    """

    def __init__(self, engine: GPGKeysEngine) -> None:
        self._engine = engine

    async def add_email(
        self,
        owner_id: int,
        email: str,
        *,
        is_activated: bool = False,
        is_primary: bool = False,
    ) -> EmailAddress:
        """Register an email address for an account.

        Raises:
            EmailAlreadyUsedError: If the address is already registered.
        """
        address = EmailAddress(
            owner_id=owner_id,
            email=email,
            is_activated=is_activated,
            is_primary=is_primary,
        )
        try:
            async with self._engine.datastore.session() as session:
                session.add(address)
                await session.commit()
                await session.refresh(address)
        except IntegrityError as exc:
            raise EmailAlreadyUsedError() from exc
        return address

    async def activate_email(self, email: str) -> EmailAddress | None:
        """Mark an address as verified.

        Returns:
            The updated address, or None if it is not registered.
        """
        async with self._engine.datastore.session() as session:
            result = await session.execute(select(EmailAddress).where(EmailAddress.email == email))
            address = result.scalar_one_or_none()
            if address is None:
                return None
            address.is_activated = True
            await session.commit()
            await session.refresh(address)
        logger.info("activated email address for owner %d", address.owner_id)
        return address

    async def list_emails(self, owner_id: int) -> list[EmailAddress]:
        """List every address of an account, verified or not."""
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(EmailAddress)
                .where(EmailAddress.owner_id == owner_id)
                .order_by(EmailAddress.id)
            )
            return list(result.scalars().all())

    async def get_email_addresses(self, owner_id: int) -> list[EmailAddress]:
        """``AccountDirectory`` lookup used when binding key identities."""
        return await self.list_emails(owner_id)
