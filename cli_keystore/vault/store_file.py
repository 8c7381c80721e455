"""
Vault Store File — The single encrypted file holding every secret.

On-disk format (hex strings):
    {"salt": "...", "iv": "...", "ciphertext": "..."}

The salt is generated once, when the store is created, and is reused on
every save; the iv (nonce) is drawn fresh on every save. Writes go to a
sibling temporary file that atomically replaces the store, so the file is
either absent or complete.

Security Note:
    Never log plaintext or ciphertext values.
"""
import os
import contextlib
import logging
from pathlib import Path
from typing import Any, Optional, NamedTuple
from collections.abc import Mapping

import orjson
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..data import SecretMap
from .crypto import (
    NONCE_SIZE,
    SALT_SIZE,
    TAG_SIZE,
    decrypt,
    deserialize_secrets,
    encrypt,
    generate_nonce,
    serialize_secrets,
)
from ..exceptions import InvalidInput, MalformedStoreFile, StoreIOError

logger = logging.getLogger("cli_keystore.vault")


class StoreContents(NamedTuple):
    salt: bytes
    nonce: bytes
    ciphertext: bytes


def _hex_field(value: str, name: str, length: Optional[int] = None, minimum: int = 0) -> str:
    try:
        raw = bytes.fromhex(value)
    except ValueError as err:
        raise ValueError(f"{name} is not valid hex") from err
    if length is not None and len(raw) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(raw)}")
    if len(raw) < minimum:
        raise ValueError(f"{name} must be at least {minimum} bytes, got {len(raw)}")
    return value


class EncryptedStoreFile(BaseModel):
    """Validated on-disk representation of the store."""

    salt: str
    iv: str
    ciphertext: str

    model_config = ConfigDict(extra="forbid", strict=True)

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        return _hex_field(v, "salt", length=SALT_SIZE)

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: str) -> str:
        return _hex_field(v, "iv", length=NONCE_SIZE)

    @field_validator("ciphertext")
    @classmethod
    def validate_ciphertext(cls, v: str) -> str:
        return _hex_field(v, "ciphertext", minimum=TAG_SIZE)

    def contents(self) -> StoreContents:
        return StoreContents(
            salt=bytes.fromhex(self.salt),
            nonce=bytes.fromhex(self.iv),
            ciphertext=bytes.fromhex(self.ciphertext),
        )

    @classmethod
    def from_contents(cls, contents: StoreContents) -> "EncryptedStoreFile":
        return cls(
            salt=contents.salt.hex(),
            iv=contents.nonce.hex(),
            ciphertext=contents.ciphertext.hex(),
        )


class StoreFile:
    """Load, decrypt, re-encrypt and save the encrypted store file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoreContents:
        """Read and parse the store file.

        Raises:
            MalformedStoreFile: Invalid JSON, missing/extra fields, bad hex.
            StoreIOError: If the file cannot be read.
        """
        try:
            raw = self.path.read_bytes()
        except OSError as err:
            raise StoreIOError(f"Could not read secure store {self.path}: {err}") from err
        try:
            parsed = EncryptedStoreFile.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as err:
            raise MalformedStoreFile(
                f"Secure store {self.path} is corrupted: {err}"
            ) from err
        return parsed.contents()

    def decrypt_all(self, contents: StoreContents, key: bytes) -> SecretMap:
        """Decrypt the whole secret map.

        Raises:
            AuthenticationFailed: Wrong key or corrupted ciphertext.
            MalformedStoreFile: If the decrypted payload holds values a
                SecretMap does not accept.
        """
        plaintext = decrypt(key, contents.nonce, contents.ciphertext)
        try:
            return SecretMap(deserialize_secrets(plaintext))
        except InvalidInput as err:
            raise MalformedStoreFile(f"Invalid secret in store payload: {err}") from err

    def save(self, salt: bytes, secrets: Mapping[str, Any], key: bytes) -> StoreContents:
        """Encrypt ``secrets`` with a fresh nonce and atomically replace the file.

        ``salt`` must be the store's original salt.

        Raises:
            StoreIOError: If the file cannot be written; the previous file
                is left in place.
        """
        plaintext = serialize_secrets(secrets)
        nonce = generate_nonce()
        contents = StoreContents(salt, nonce, encrypt(key, nonce, plaintext))
        payload = orjson.dumps(
            EncryptedStoreFile.from_contents(contents).model_dump(),
            option=orjson.OPT_INDENT_2,
        )
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as fp:
                fp.write(payload)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp, self.path)
        except OSError as err:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise StoreIOError(f"Could not write secure store {self.path}: {err}") from err
        logger.debug("Secure store saved: %s (%d secret(s))", self.path, len(secrets))
        return contents

    def remove(self) -> bool:
        """Delete the store file. Returns True if it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as err:
            raise StoreIOError(f"Could not delete secure store {self.path}: {err}") from err
        return True
