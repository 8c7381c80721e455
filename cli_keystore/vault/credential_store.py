"""
CredentialStore — Password-encrypted local storage for a CLI's secrets.

Provides the public API consumed by the command-line layer:
- ``set(name, value)`` — encrypt and persist a secret
- ``get(name, default)`` — decrypt and return a secret
- ``delete(name)`` — remove a secret, rewriting the store only if it changed
- ``keys()`` / ``exists(name)`` — enumerate and check stored secrets
- ``clear_cached_key()`` — forget the derived key (memory and disk)
- ``unlock()`` / ``save()`` — one read-modify-write cycle, for callers
  such as key rotation
- ``reset(name)`` / ``destroy()`` — credential reset flows

Key acquisition order: in-memory key → disk key cache (once per
instance) → master password prompt. One instance is meant to live for one
CLI process.

Security Note:
    Never log plaintext, ciphertext, passwords or keys. Only log secret
    names, file paths and operations.
"""
import logging
from typing import Any, Optional

from ..data import SecretMap
from .config import StoreConfig
from .crypto import derive_key, generate_salt
from ..exceptions import (
    AuthenticationFailed,
    EmptyPassword,
    PasswordMismatch,
)
from .key_cache import CACHE_DURATION_PROMPT, KeyCache, duration_for_choice
from .prompt import Prompt, ask, prompt_user
from .store_file import StoreContents, StoreFile

logger = logging.getLogger("cli_keystore.vault")

DECRYPT_ERROR = (
    "Could not decrypt secure store: the master password may be wrong or the "
    "store may be corrupted. Any cached master key has been cleared. "
    "Please try again with the correct master password."
)


class CredentialStore:
    """Encrypted secret store guarded by a master password.

    All secrets live in one AES-GCM encrypted file whose key is derived
    from the master password and the store's salt. The derived key is held
    in memory for the lifetime of the instance and, if the user agrees,
    cached on disk for a limited time.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        prompt: Optional[Prompt] = None,
    ):
        self.config = config or StoreConfig.from_env()
        self._prompt = prompt or prompt_user
        self.store_file = StoreFile(self.config.store_path)
        self.key_cache = KeyCache(self.config.key_cache_path)
        self._key: Optional[bytes] = None

    # ------------------------------------------------------------------
    # Password entry
    # ------------------------------------------------------------------

    async def read_new_password(self) -> str:
        """Prompt twice for a new master password.

        Raises:
            EmptyPassword: If either entry is blank or cancelled.
            PasswordMismatch: If the entries differ.
        """
        first = await ask(self._prompt, "Enter new master password:", True)
        if not first:
            raise EmptyPassword(
                "Master password setup cancelled: password cannot be empty."
            )
        second = await ask(self._prompt, "Confirm master password:", True)
        if not second:
            raise EmptyPassword(
                "Master password setup cancelled: confirmation was not provided."
            )
        if first != second:
            raise PasswordMismatch(
                "Master password setup aborted: passwords do not match."
            )
        return first

    async def _read_password(self) -> str:
        password = await ask(
            self._prompt, "Enter master password to unlock secure store:", True
        )
        if not password:
            raise EmptyPassword("Master password entry cancelled or empty.")
        return password

    # ------------------------------------------------------------------
    # Key management
    # ------------------------------------------------------------------

    async def _derive(self, salt: bytes, first_time: bool) -> bytes:
        if first_time:
            logger.info(
                "Secure store setup: set a master password to encrypt "
                "and protect your stored credentials."
            )
            password = await self.read_new_password()
        else:
            password = await self._read_password()
        key = derive_key(password, salt, self.config.kdf_iterations)
        self._key = key
        choice = await ask(self._prompt, CACHE_DURATION_PROMPT, False)
        self.key_cache.persist(key, duration_for_choice(choice))
        return key

    async def _ensure_key(self, salt: bytes, first_time: bool = False) -> bytes:
        """Return the derived key: memory, then disk cache, then password."""
        if self._key is not None:
            return self._key
        if not self.key_cache.load_attempted:
            cached = self.key_cache.try_load()
            if cached is not None:
                self._key = cached
                return cached
        return await self._derive(salt, first_time)

    def save(self, salt: bytes, secrets: SecretMap, key: bytes) -> None:
        """Encrypt ``secrets`` under ``key`` and keep ``key`` for this instance.

        Args:
            salt: The store's salt; ``key`` must be derived from it.
            secrets: Full secret map to write.
            key: 32-byte derived key.
        """
        self.store_file.save(salt, secrets, key)
        self._key = key
        if secrets.new:
            logger.info("Secure store created at %s", self.store_file.path)

    async def unlock(self) -> tuple[StoreContents, bytes, SecretMap]:
        """Load the store, acquire the key and decrypt every secret.

        Raises:
            MalformedStoreFile: If the store file or its decrypted payload
                is malformed.
            AuthenticationFailed: Wrong password or corrupted ciphertext;
                all cached key material is cleared first.
        """
        contents = self.store_file.load()
        key = await self._ensure_key(contents.salt)
        try:
            secrets = self.store_file.decrypt_all(contents, key)
        except AuthenticationFailed as err:
            await self.clear_cached_key()
            logger.error("Failed to decrypt secure store %s", self.store_file.path)
            raise AuthenticationFailed(DECRYPT_ERROR) from err
        return contents, key, secrets

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        """True once a master password has been set (the store exists)."""
        return self.store_file.exists()

    async def get(self, name: str, default: Any = None) -> Any:
        """Decrypt and return a secret.

        An absent store is a normal state: ``default`` is returned without
        prompting.

        Args:
            name: Secret name.
            default: Value returned if the secret is not found.

        Raises:
            AuthenticationFailed: Wrong password or corrupted store. No
                retry happens within the call.
        """
        SecretMap.validate_name(name)
        if not self.store_file.exists():
            return default
        _, _, secrets = await self.unlock()
        return secrets.get(name, default)

    async def set(self, name: str, value: Any) -> None:
        """Encrypt and persist a secret.

        Creates the store (master password setup) on first use. If an
        existing store cannot be decrypted nothing is written.

        Args:
            name: Secret name.
            value: JSON-representable value, or bytes.
        """
        SecretMap.validate(name, value)
        if self.store_file.exists():
            contents, key, secrets = await self.unlock()
            salt = contents.salt
        else:
            # a key derived under a previous salt cannot open a new store
            await self.clear_cached_key()
            salt = generate_salt()
            key = await self._ensure_key(salt, first_time=True)
            secrets = SecretMap(new=True)
        secrets[name] = value
        if secrets.is_changed:
            self.save(salt, secrets, key)
            logger.debug("Vault set: key=%s", name)

    async def delete(self, name: str) -> bool:
        """Remove a secret.

        Returns:
            True if the secret existed. When it did not, the store file is
            left untouched.
        """
        SecretMap.validate_name(name)
        if not self.store_file.exists():
            return False
        contents, key, secrets = await self.unlock()
        secrets.pop(name, None)
        if not secrets.is_changed:
            return False
        self.save(contents.salt, secrets, key)
        logger.debug("Vault delete: key=%s", name)
        return True

    async def keys(self) -> list[str]:
        """List the names of stored secrets."""
        if not self.store_file.exists():
            return []
        _, _, secrets = await self.unlock()
        return list(secrets)

    async def exists(self, name: str) -> bool:
        SecretMap.validate_name(name)
        if not self.store_file.exists():
            return False
        _, _, secrets = await self.unlock()
        return name in secrets

    async def clear_cached_key(self) -> None:
        """Forget the derived key in memory and on disk."""
        self._key = None
        self.key_cache.clear()

    async def reset(self, name: str = "credentials") -> bool:
        """Remove one secret and then clear all cached key material.

        Returns:
            True if the secret existed.
        """
        if not self.is_initialized():
            logger.info("Secure store not yet initialized. Nothing to reset.")
            return False
        deleted = await self.delete(name)
        await self.clear_cached_key()
        return deleted

    async def destroy(self) -> bool:
        """Delete the store and the key cache.

        Every stored secret is lost; this is the recovery path for a
        forgotten master password.

        Returns:
            True if a store file existed.
        """
        await self.clear_cached_key()
        removed = self.store_file.remove()
        if removed:
            logger.warning("Secure store %s deleted", self.store_file.path)
        return removed
