"""Identity binder — match key identities to an owner's verified emails."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gpg_keys.errors.key_errors import UnverifiedIdentityError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from gpg_keys.engine.accounts import AccountEmail
    from gpg_keys.openpgp.decoder import Identity


def bind_identities(
    identities: Sequence[Identity],
    addresses: Iterable[AccountEmail],
) -> list[str]:
    """Return the verified email addresses a key's identities bind to.

    Every identity must carry an email that exactly (case-sensitively)
    matches an activated address of the owner; otherwise the whole key is
    rejected.

    Args:
        identities: Identity claims decoded from the key.
        addresses: The owner's email addresses.

    Returns:
        Bound addresses in identity order, without duplicates.

    Raises:
        UnverifiedIdentityError: If the key has no identities, an identity
            has no email, or an email is not verified for the owner.
    """
    if not identities:
        raise UnverifiedIdentityError(None)

    verified = {address.email for address in addresses if address.is_activated}

    emails: list[str] = []
    for identity in identities:
        if identity.email is None:
            raise UnverifiedIdentityError(
                identity.raw,
                f"identity {identity.raw!r} does not contain an email address",
            )
        if identity.email not in verified:
            raise UnverifiedIdentityError(identity.email)
        if identity.email not in emails:
            emails.append(identity.email)
    return emails
