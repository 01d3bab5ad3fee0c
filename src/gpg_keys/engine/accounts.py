"""Account collaborators consumed by the key service.

The key service never owns account data. It asks an ``AccountDirectory``
for an owner's email addresses and is handed a ``Requestor`` describing
who performs a deletion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence


class AccountEmail(Protocol):
    """An email address of an account and whether it has been verified."""

    email: str
    is_activated: bool


class AccountDirectory(Protocol):
    """Looks up the email addresses an account has registered."""

    async def get_email_addresses(self, owner_id: int) -> Sequence[AccountEmail]: ...


@dataclass(frozen=True)
class Requestor:
    """The acting user of a delete request.

    Attributes:
        id: Account ID of the acting user.
        is_admin: Whether the user holds administrative privilege.
    """

    id: int
    is_admin: bool = False

    def can_manage(self, owner_id: int) -> bool:
        """Return True if this requestor may modify keys owned by *owner_id*."""
        return self.is_admin or self.id == owner_id
