"""Async SQLAlchemy datastore."""

from gpg_keys.datastore.client import Datastore
from gpg_keys.datastore.engines import create_engine

__all__ = ["Datastore", "create_engine"]
