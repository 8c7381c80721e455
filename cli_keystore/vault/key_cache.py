"""
Vault Key Cache — Optional on-disk cache of the derived key.

Stores the derived key (never the master password) in a 0600 file:
    {"keyHex": "<hex 32 bytes>", "expiresAt": "<ISO-8601 UTC>"}

States: Empty (no file) → Valid → Expired → Empty (deleted).

Every failure here is logged and swallowed: the cache is an optimization
whose fallback is prompting for the password again.

Security Note:
    Never log key material. Only log paths and expiry timestamps.
"""
import os
import logging
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import Optional

import orjson

from .crypto import KEY_LENGTH
from ..exceptions import CacheReadError

logger = logging.getLogger("cli_keystore.vault")

NO_CACHE = timedelta(0)

# Menu choice → retention window; anything else means NO_CACHE.
CACHE_DURATIONS: dict[str, timedelta] = {
    "1": NO_CACHE,
    "2": timedelta(hours=1),
    "3": timedelta(hours=8),
    "4": timedelta(days=1),
}

CACHE_DURATION_PROMPT = """
Cache the master key to avoid re-entering your password for future CLI sessions?
This is convenient but less secure as the key will be stored temporarily on disk.
Choose caching duration by typing the corresponding number:
  1. Do not cache (most secure, password needed next time)
  2. Cache for 1 hour
  3. Cache for 8 hours
  4. Cache for 1 day
Enter choice (1-4). Invalid entry defaults to 'Do not cache': """


def duration_for_choice(choice: Optional[str]) -> timedelta:
    """Map a menu answer to a retention window, defaulting to no cache."""
    if not choice:
        return NO_CACHE
    return CACHE_DURATIONS.get(choice.strip(), NO_CACHE)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(
        timespec="milliseconds"
    ).replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class KeyCache:
    """Disk-backed cache of the derived key, with a per-process load flag.

    ``load_attempted`` flips on the first ``try_load()`` so a process reads
    the disk cache at most once; ``clear()`` resets it.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.load_attempted = False

    def exists(self) -> bool:
        return self.path.exists()

    def _read(self) -> tuple[bytes, datetime]:
        """Parse the cache file.

        Raises:
            CacheReadError: On unreadable, malformed or wrong-length content.
        """
        try:
            cached = orjson.loads(self.path.read_bytes())
            key = bytes.fromhex(cached["keyHex"])
            expires_at = _parse_timestamp(cached["expiresAt"])
        except (OSError, orjson.JSONDecodeError, KeyError, TypeError,
                AttributeError, ValueError) as err:
            raise CacheReadError(f"Unreadable key cache {self.path}") from err
        if len(key) != KEY_LENGTH:
            raise CacheReadError(
                f"Cached key must be {KEY_LENGTH} bytes, got {len(key)}"
            )
        return key, expires_at

    def _remove(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as err:
            logger.warning("Could not delete key cache %s: %s", self.path, err)

    def try_load(self) -> Optional[bytes]:
        """Return the cached key, or None when absent, expired or corrupt.

        Expired and corrupt files are deleted as a side effect.
        """
        self.load_attempted = True
        if not self.exists():
            return None
        try:
            key, expires_at = self._read()
        except CacheReadError as err:
            logger.warning("%s; deleting it", err)
            self._remove()
            return None
        if expires_at <= datetime.now(timezone.utc):
            logger.info("Master key disk cache expired at %s; deleting it", expires_at)
            self._remove()
            return None
        logger.debug("Using master key cached on disk (valid until %s)", expires_at)
        return key

    def persist(self, key: bytes, duration: timedelta) -> None:
        """Cache ``key`` on disk for ``duration``.

        A non-positive duration means the user declined caching: any
        existing cache file is removed instead.
        """
        if duration <= NO_CACHE:
            if self.exists():
                self._remove()
                logger.info("Existing master key disk cache cleared as per user preference.")
            return
        expires_at = datetime.now(timezone.utc) + duration
        payload = orjson.dumps(
            {"keyHex": key.hex(), "expiresAt": _format_timestamp(expires_at)}
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            try:
                os.write(fd, payload)
            finally:
                os.close(fd)
            # the mode argument is ignored for pre-existing files
            os.chmod(self.path, 0o600)
        except OSError as err:
            logger.error("Could not save master key to disk cache %s: %s", self.path, err)
            return
        logger.info(
            "Master key has been cached to disk. It will expire around %s.",
            expires_at.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z"),
        )
        logger.warning(
            "SECURITY WARNING: the derived encryption key is temporarily stored "
            "on disk at %s. Ensure your system and user account are secure. "
            "The cache is removed on expiry or when credentials are reset.",
            self.path,
        )

    def clear(self) -> None:
        """Delete the cache file and allow a fresh disk check."""
        self.load_attempted = False
        if self.exists():
            self._remove()
