"""Engine data models (SQLAlchemy ORM).

Importing this package registers every table on ``Base.metadata``.
"""

from gpg_keys.engine.models.base import Base, TimestampMixin
from gpg_keys.engine.models.email_address import EmailAddress
from gpg_keys.engine.models.gpg_key import GPGKey

__all__ = [
    "Base",
    "EmailAddress",
    "GPGKey",
    "TimestampMixin",
]
