"""
Vault Configuration — Store location and key-derivation settings.

Reads overrides from environment variables:
    KEYSTORE_CONFIG_DIR = <directory holding both store files>
    KEYSTORE_STORE_FILE = <encrypted store filename>
    KEYSTORE_KEY_CACHE_FILE = <derived-key cache filename>
    KEYSTORE_KDF_ITERATIONS = <PBKDF2 rounds, at least 100000>

The store file does not record its KDF rounds: changing
KEYSTORE_KDF_ITERATIONS makes an existing store undecryptable.

Security Note:
    Never log key material. Only log paths and file names.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger("cli_keystore.vault")

DEFAULT_CONFIG_DIR = Path.home() / ".dspace"
DEFAULT_STORE_FILE = "auth-store.json"
DEFAULT_KEY_CACHE_FILE = ".session_key"
DEFAULT_KDF_ITERATIONS = 100_000


def default_config_dir() -> Path:
    """Return the configuration directory, honouring KEYSTORE_CONFIG_DIR."""
    raw = os.environ.get("KEYSTORE_CONFIG_DIR")
    if raw:
        return Path(raw).expanduser()
    return DEFAULT_CONFIG_DIR


class StoreConfig(BaseModel):
    """Validated credential store configuration."""

    config_dir: Path = Field(default_factory=default_config_dir)
    store_filename: str = Field(default=DEFAULT_STORE_FILE, min_length=1)
    key_cache_filename: str = Field(default=DEFAULT_KEY_CACHE_FILE, min_length=1)
    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=100_000)

    @field_validator("store_filename", "key_cache_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Filenames are plain names inside config_dir."""
        if os.sep in v or (os.altsep and os.altsep in v) or v in (".", ".."):
            raise ValueError(f"Invalid file name: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_distinct_files(self) -> "StoreConfig":
        """Ensure the store and the key cache never share a file."""
        if self.store_filename == self.key_cache_filename:
            raise ValueError(
                "store_filename and key_cache_filename must differ"
            )
        return self

    @property
    def store_path(self) -> Path:
        return self.config_dir / self.store_filename

    @property
    def key_cache_path(self) -> Path:
        return self.config_dir / self.key_cache_filename

    def ensure_dir(self) -> Path:
        """Create the configuration directory on demand."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        return self.config_dir

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create StoreConfig by loading values from environment.

        Returns:
            Populated StoreConfig instance.
        """
        values = {"config_dir": default_config_dir()}
        store_file = os.environ.get("KEYSTORE_STORE_FILE")
        if store_file:
            values["store_filename"] = store_file
        cache_file = os.environ.get("KEYSTORE_KEY_CACHE_FILE")
        if cache_file:
            values["key_cache_filename"] = cache_file
        iterations = os.environ.get("KEYSTORE_KDF_ITERATIONS")
        if iterations:
            values["kdf_iterations"] = int(iterations)
        config = cls(**values)
        logger.debug("Keystore directory: %s", config.config_dir)
        return config
