"""Vault — Password-encrypted secret storage for a command-line client.

Security Note (Threat Model):
    Secrets are decrypted in process memory while an operation runs, and
    the derived key is held in memory for the life of the process. If the
    user opts in, the derived key is also cached on disk (mode 0600) until
    it expires. Anyone able to run code as the user, or to read that cache
    file, can recover the secrets. This only raises the cost of casual disk
    inspection.
"""

from .config import StoreConfig
from .credential_store import CredentialStore
from .key_rotation import change_master_password
from ..exceptions import (
    KeystoreError,
    InvalidInput,
    EmptyPassword,
    PasswordMismatch,
    MalformedStoreFile,
    AuthenticationFailed,
    CacheReadError,
    StoreIOError,
)

__all__ = [
    "CredentialStore",
    "change_master_password",
    "StoreConfig",
    "KeystoreError",
    "InvalidInput",
    "EmptyPassword",
    "PasswordMismatch",
    "MalformedStoreFile",
    "AuthenticationFailed",
    "CacheReadError",
    "StoreIOError",
]
