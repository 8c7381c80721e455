import math
from typing import Optional, Any
from collections.abc import Iterator, Mapping, MutableMapping
from .exceptions import InvalidInput

# reserved marker of a bytes value inside the encrypted JSON payload
BYTES_WRAPPER_KEY = "__vault_bytes_b64__"

# orjson stores integers as signed or unsigned 64-bit values
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 64 - 1


class SecretMap(MutableMapping[str, Any]):
    """Decrypted secrets, dict-like.

    Exists only for one read-modify-write cycle of the store and is never
    persisted unencrypted. Only JSON-representable values (plus bytes) are
    accepted, so a bad value is rejected before anything is prompted or
    written.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        new: bool = False
    ) -> None:
        self._data: dict[str, Any] = {}
        self._new = new
        self._changed = False
        if data is not None:
            for key, value in data.items():
                self.validate(key, value)
                self._data[key] = value

    def __repr__(self) -> str:
        # values are never rendered
        return (
            f'<SecretMap [new:{self.new}, changed:{self.is_changed}] '
            f'keys={sorted(self._data)!r}>'
        )

    # --- Validation helpers ---

    @classmethod
    def is_serializable(cls, value: Any) -> bool:
        """Check if a value can be stored in the encrypted JSON payload.

        Returns True for bytes and for JSON values: primitive types and
        lists/dicts (with string keys) made of them. Bytes are only
        accepted as a whole secret value, not nested inside one.
        Integers must fit in 64 bits and floats must be finite. Tuples
        are rejected since they would be read back as lists, and so are
        dicts using the reserved bytes marker as a key.
        """
        if isinstance(value, (bytes, bytearray)):
            return True
        return cls._is_json(value)

    @classmethod
    def _is_json(cls, value: Any) -> bool:
        if value is None or isinstance(value, (bool, str)):
            return True
        if isinstance(value, int):
            return INT_MIN <= value <= INT_MAX
        if isinstance(value, float):
            return math.isfinite(value)
        if isinstance(value, dict):
            if BYTES_WRAPPER_KEY in value:
                return False
            return all(
                isinstance(k, str) and cls._is_json(v)
                for k, v in value.items()
            )
        if isinstance(value, list):
            return all(cls._is_json(v) for v in value)
        return False

    @classmethod
    def validate_name(cls, key: Any) -> None:
        if not isinstance(key, str) or not key:
            raise InvalidInput("Secret name must be a non-empty string")

    @classmethod
    def validate(cls, key: Any, value: Any) -> None:
        cls.validate_name(key)
        if not cls.is_serializable(value):
            raise InvalidInput(
                f"Value for secret {key!r} cannot be stored "
                f"({type(value).__name__}): only JSON values and bytes are "
                "accepted"
            )

    # --- Properties ---

    @property
    def new(self) -> bool:
        return self._new

    @property
    def is_changed(self) -> bool:
        return self._changed

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.validate(key, value)
        self._data[key] = value
        self._changed = True

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._changed = True
