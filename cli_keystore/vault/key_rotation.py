"""
Vault Key Rotation — Re-encrypt the store under a new master password.

The store's salt is kept: only the password (and so the derived key)
changes. The nonce is drawn fresh by the save, and the disk key cache is
cleared because the key it holds no longer opens the store.

Security Note:
    Plaintext exists in memory only while the store is re-encrypted.
    Never log plaintext, ciphertext, passwords or keys.
"""
import logging

from .crypto import derive_key
from .credential_store import CredentialStore
from ..exceptions import KeystoreError

logger = logging.getLogger("cli_keystore.vault")


async def change_master_password(store: CredentialStore) -> int:
    """Unlock the store, ask for a new master password and re-encrypt it.

    Args:
        store: Credential store to rotate; it must already exist.

    Returns:
        Number of secrets re-encrypted.

    Raises:
        KeystoreError: If the store has not been initialized.
        AuthenticationFailed: If the current password is wrong.
        EmptyPassword, PasswordMismatch: If the new password is rejected.
    """
    if not store.is_initialized():
        raise KeystoreError(
            "Secure store not yet initialized: there is no master password to change."
        )
    contents, _, secrets = await store.unlock()
    logger.info("Changing master password for %s", store.store_file.path)
    password = await store.read_new_password()
    new_key = derive_key(password, contents.salt, store.config.kdf_iterations)
    # the cached key only opens the store under the old password
    await store.clear_cached_key()
    store.save(contents.salt, secrets, new_key)
    logger.info(
        "Master password changed: %d secret(s) re-encrypted", len(secrets),
    )
    return len(secrets)
