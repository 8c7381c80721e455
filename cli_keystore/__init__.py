"""CLI Keystore.

Password-encrypted local storage of a command-line client's secrets.
"""
from .version import __version__
from .data import SecretMap
from .vault import (
    CredentialStore,
    StoreConfig,
    change_master_password,
    KeystoreError,
    InvalidInput,
    EmptyPassword,
    PasswordMismatch,
    MalformedStoreFile,
    AuthenticationFailed,
    StoreIOError,
)

__all__ = [
    "__version__",
    "SecretMap",
    "CredentialStore",
    "StoreConfig",
    "change_master_password",
    "KeystoreError",
    "InvalidInput",
    "EmptyPassword",
    "PasswordMismatch",
    "MalformedStoreFile",
    "AuthenticationFailed",
    "StoreIOError",
]
