"""GPGKeysEngine — central engine client owning the datastore and services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gpg_keys.config.settings import AppConfig
    from gpg_keys.datastore.client import Datastore
    from gpg_keys.engine.accounts import AccountDirectory
    from gpg_keys.engine.services.email_address_service import EmailAddressService
    from gpg_keys.engine.services.gpg_key_service import GPGKeyService
    from gpg_keys.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class GPGKeysEngine:
    """Central engine that owns the datastore, metrics and services.

    The account directory is injectable so a host platform can supply its
    own account system; by default the engine's ``EmailAddressService``
    answers email lookups.
    """

    def __init__(self, config: AppConfig, *, accounts: AccountDirectory | None = None) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            accounts: Account directory used to verify key identities.
        """
        self._config = config
        self._initialized = False
        self._external_accounts = accounts

        self._datastore: Datastore | None = None
        self._metrics: EngineMetrics | None = None
        self._accounts: AccountDirectory | None = None

        self._email_address_service: EmailAddressService | None = None
        self._gpg_key_service: GPGKeyService | None = None

    async def initialize(self) -> None:
        """Open the datastore, create tables and start services.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        # Import here to avoid circular deps
        from gpg_keys.datastore.client import Datastore
        from gpg_keys.engine.models import Base

        self._datastore = Datastore(self._config.db)
        await self._datastore.open(base=Base)

        if self._config.metrics.enabled:
            from gpg_keys.metrics.collector import EngineMetrics

            self._metrics = EngineMetrics()

        from gpg_keys.engine.services.email_address_service import EmailAddressService
        from gpg_keys.engine.services.gpg_key_service import GPGKeyService

        self._email_address_service = EmailAddressService(self)
        self._gpg_key_service = GPGKeyService(self)
        self._accounts = self._external_accounts or self._email_address_service

        self._initialized = True
        logger.info("gpg keys engine initialized (%s)", self._config.db.engine)

    async def close(self) -> None:
        """Shut down services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        self._gpg_key_service = None
        self._email_address_service = None
        self._accounts = None
        self._metrics = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def metrics(self) -> EngineMetrics | None:
        """Get the metrics collector, or None when metrics are disabled."""
        return self._metrics

    @property
    def accounts(self) -> AccountDirectory:
        """Get the account directory used for identity binding."""
        if self._accounts is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._accounts

    @property
    def email_address_service(self) -> EmailAddressService:
        """Get the email address service."""
        if self._email_address_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._email_address_service

    @property
    def gpg_key_service(self) -> GPGKeyService:
        """Get the GPG key service."""
        if self._gpg_key_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._gpg_key_service
