"""
Vault Crypto Core — Key derivation, encryption/decryption, and serialization.

- Key derivation: PBKDF2-HMAC-SHA512(master_password, salt) → 32-byte key
- Encryption: AES-256-GCM(key, nonce) → ciphertext with 16-byte tag appended

Security Note:
    Never log plaintext, ciphertext, passwords or key bytes.
    Nonces are random 96-bit and drawn fresh for every save.
"""
import os
import base64
import logging
from typing import Any, Union
from collections.abc import Mapping

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..data import BYTES_WRAPPER_KEY
from ..exceptions import AuthenticationFailed, InvalidInput, MalformedStoreFile

logger = logging.getLogger("cli_keystore.vault")

KDF_ITERATIONS = 100_000
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    password: Union[str, bytes],
    salt: bytes,
    iterations: int = KDF_ITERATIONS,
) -> bytes:
    """Stretch a master password into a 32-byte key using PBKDF2-HMAC-SHA512.

    Args:
        password: Master password (str is UTF-8 encoded).
        salt: Store salt, fixed for the life of the store.
        iterations: PBKDF2 rounds.

    Returns:
        32-byte derived key.

    Raises:
        InvalidInput: If password or salt is empty.
    """
    if not password:
        raise InvalidInput("Master password cannot be empty")
    if not salt:
        raise InvalidInput("Key derivation salt cannot be empty")
    if isinstance(password, str):
        password = password.encode("utf-8")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password)


def generate_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def generate_nonce() -> bytes:
    return os.urandom(NONCE_SIZE)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def _check_params(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise InvalidInput(
            f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
        )
    if len(nonce) != NONCE_SIZE:
        raise InvalidInput(
            f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
        )


def encrypt(key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext with AES-256-GCM.

    Format: [encrypted_payload][GCM_tag 16B]

    Args:
        key: 32-byte derived key.
        nonce: 12-byte nonce, never reused under the same key.
        plaintext: Data to encrypt.

    Returns:
        ciphertext bytes.
    """
    _check_params(key, nonce)
    return AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
    """Decrypt and authenticate AES-256-GCM ciphertext.

    Args:
        key: 32-byte derived key.
        nonce: 12-byte nonce stored alongside the ciphertext.
        ciphertext: Payload with the GCM tag appended.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        AuthenticationFailed: Wrong key, tampered or truncated ciphertext.
    """
    _check_params(key, nonce)
    if len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailed(
            f"ciphertext too short: {len(ciphertext)} bytes "
            f"(minimum {TAG_SIZE})"
        )
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as err:
        raise AuthenticationFailed("Decryption failed") from err


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def encode_value(value: Any) -> Any:
    """Wrap bytes values as {"__vault_bytes_b64__": "<base64>"} for JSON.

    SecretMap refuses dicts carrying that key, so the wrapper is never
    ambiguous with a stored JSON object.
    """
    if isinstance(value, (bytes, bytearray)):
        return {BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
    return value


def decode_value(value: Any) -> Any:
    """Reverse encode_value.

    Raises:
        MalformedStoreFile: If a wrapper does not hold valid base64.
    """
    if not (isinstance(value, dict) and BYTES_WRAPPER_KEY in value):
        return value
    if len(value) != 1:
        raise MalformedStoreFile("Invalid bytes wrapper in store payload")
    try:
        return base64.b64decode(value[BYTES_WRAPPER_KEY], validate=True)
    except (TypeError, ValueError) as err:
        raise MalformedStoreFile("Invalid bytes wrapper in store payload") from err


def serialize_secrets(secrets: Mapping[str, Any]) -> bytes:
    """Serialize the secret map to bytes for encryption.

    Args:
        secrets: Mapping of secret name to JSON-representable value.

    Returns:
        orjson-encoded bytes.

    Raises:
        InvalidInput: If a value cannot be represented as JSON.
    """
    try:
        return orjson.dumps(
            {name: encode_value(value) for name, value in secrets.items()}
        )
    except TypeError as err:
        raise InvalidInput(f"Secret values must be JSON serializable: {err}") from err


def deserialize_secrets(data: bytes) -> dict[str, Any]:
    """Deserialize decrypted bytes back to the secret map.

    Raises:
        MalformedStoreFile: If the payload is not a JSON object.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise MalformedStoreFile("Decrypted store payload is not valid JSON") from err
    if not isinstance(parsed, dict):
        raise MalformedStoreFile("Decrypted store payload is not a JSON object")
    return {name: decode_value(value) for name, value in parsed.items()}
