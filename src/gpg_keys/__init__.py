"""gpg-keys — OpenPGP public key ingestion and hierarchy storage."""

__version__ = "0.1.0"
