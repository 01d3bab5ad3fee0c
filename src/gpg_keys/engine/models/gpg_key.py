"""GPGKey model — one row per primary key or subkey."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gpg_keys.engine.models.base import Base


class GPGKey(Base):
    """Stored OpenPGP public key.

    A primary key has ``primary_key_id`` NULL; a subkey row carries the
    ``key_id`` of its primary. Timestamps are kept as epoch seconds and
    converted by :mod:`gpg_keys.engine.records`.
    """

    __tablename__ = "gpg_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True, comment="Owning account ID"
    )
    key_id: Mapped[str] = mapped_column(
        String(16), nullable=False, unique=True, comment="64-bit OpenPGP key ID, upper-case hex"
    )
    primary_key_id: Mapped[str | None] = mapped_column(
        String(16), nullable=True, index=True, default=None, comment="Key ID of the primary key"
    )
    content: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Base64 serialized public key packet"
    )
    created_unix: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_unix: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)
    added_unix: Mapped[int] = mapped_column(BigInteger, nullable=False)
    emails: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    can_sign: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_encrypt_comms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_encrypt_storage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_certify: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<GPGKey id={self.id} key_id={self.key_id} owner={self.owner_id}>"
