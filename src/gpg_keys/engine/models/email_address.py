"""EmailAddress model — account email addresses and their verification state."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gpg_keys.engine.models.base import Base, TimestampMixin


class EmailAddress(Base, TimestampMixin):
    """An email address claimed by an account.

    Only activated addresses may be bound to a key identity.
    """

    __tablename__ = "email_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    is_activated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<EmailAddress {self.email} owner={self.owner_id} activated={self.is_activated}>"
