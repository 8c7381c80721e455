"""
Keystore Exceptions — error taxonomy of the credential store.

Failures on the primary store file (``MalformedStoreFile``,
``AuthenticationFailed``, ``StoreIOError``) always propagate to the caller.
``CacheReadError`` never leaves the key cache module.
"""


class KeystoreError(Exception):
    """Base class for every error raised by the credential store."""


class InvalidInput(KeystoreError, ValueError):
    """Raised for empty passwords, bad key/nonce lengths or unusable values."""


class EmptyPassword(InvalidInput):
    """Raised when a master password entry is blank or cancelled."""


class PasswordMismatch(InvalidInput):
    """Raised when the two entries of a new master password differ."""


class MalformedStoreFile(KeystoreError):
    """Raised when the store file's JSON or hex structure is unreadable."""


class AuthenticationFailed(KeystoreError):
    """Raised when AES-GCM decryption fails.

    Wrong password and tampered/corrupted ciphertext are indistinguishable.
    """


class CacheReadError(KeystoreError):
    """Raised internally when the key cache file cannot be parsed."""


class StoreIOError(KeystoreError):
    """Raised when the store file cannot be read or written; chains the OSError."""
