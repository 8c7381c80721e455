"""
Tests for the encrypted store file manager.

Tests cover:
- Save/load/decrypt cycle and on-disk format
- Salt preservation and nonce rotation
- Malformed files
- Atomic replacement
"""
import os
import stat

import orjson
import pytest

from cli_keystore.data import SecretMap
from cli_keystore.exceptions import (
    AuthenticationFailed,
    MalformedStoreFile,
    StoreIOError,
)
from cli_keystore.vault.crypto import derive_key, generate_salt
from cli_keystore.vault.store_file import StoreFile


@pytest.fixture(scope="module")
def salt():
    return generate_salt()


@pytest.fixture(scope="module")
def key(salt):
    return derive_key("pw1", salt)


@pytest.fixture
def store(tmp_path):
    return StoreFile(tmp_path / "keystore" / "auth-store.json")


def write_raw(store, document):
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_bytes(orjson.dumps(document))


class TestStoreFileCycle:
    """Tests for save/load/decrypt_all."""

    def test_absent(self, store):
        assert store.exists() is False

    def test_save_and_decrypt(self, store, salt, key):
        store.save(salt, {"credentials": {"username": "alice"}}, key)
        assert store.exists()
        secrets = store.decrypt_all(store.load(), key)
        assert isinstance(secrets, SecretMap)
        assert secrets["credentials"] == {"username": "alice"}

    def test_on_disk_format(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        document = orjson.loads(store.path.read_bytes())
        assert set(document) == {"salt", "iv", "ciphertext"}
        assert bytes.fromhex(document["salt"]) == salt
        assert len(bytes.fromhex(document["iv"])) == 12
        assert b"\"a\"" not in store.path.read_bytes()

    def test_salt_kept_nonce_rotated(self, store, salt, key):
        first = store.save(salt, {"a": 1}, key)
        second = store.save(salt, {"a": 1}, key)
        loaded = store.load()
        assert loaded.salt == first.salt == second.salt == salt
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext
        assert loaded == second

    def test_wrong_key(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        with pytest.raises(AuthenticationFailed):
            store.decrypt_all(store.load(), derive_key("wrong", salt))

    def test_no_temporary_file_left(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        assert os.listdir(store.path.parent) == ["auth-store.json"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_owner_only_permissions(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_remove(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        assert store.remove() is True
        assert store.remove() is False
        assert not store.exists()


class TestMalformedStoreFile:
    """Tests for load() on broken files."""

    def valid_document(self, store, salt, key):
        store.save(salt, {"a": 1}, key)
        return orjson.loads(store.path.read_bytes())

    def test_not_json(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{ broken")
        with pytest.raises(MalformedStoreFile):
            store.load()

    def test_not_an_object(self, store):
        write_raw(store, ["salt", "iv", "ciphertext"])
        with pytest.raises(MalformedStoreFile):
            store.load()

    @pytest.mark.parametrize("field", ["salt", "iv", "ciphertext"])
    def test_missing_field(self, store, salt, key, field):
        document = self.valid_document(store, salt, key)
        del document[field]
        write_raw(store, document)
        with pytest.raises(MalformedStoreFile):
            store.load()

    @pytest.mark.parametrize("field", ["salt", "iv", "ciphertext"])
    def test_bad_hex(self, store, salt, key, field):
        document = self.valid_document(store, salt, key)
        document[field] = "xyz"
        write_raw(store, document)
        with pytest.raises(MalformedStoreFile):
            store.load()

    @pytest.mark.parametrize("field,value", [
        ("salt", "00" * 8),
        ("iv", "00" * 16),
        ("ciphertext", "00" * 4),
    ])
    def test_wrong_length(self, store, salt, key, field, value):
        document = self.valid_document(store, salt, key)
        document[field] = value
        write_raw(store, document)
        with pytest.raises(MalformedStoreFile):
            store.load()

    def test_non_string_field(self, store, salt, key):
        document = self.valid_document(store, salt, key)
        document["iv"] = 12
        write_raw(store, document)
        with pytest.raises(MalformedStoreFile):
            store.load()

    def test_extra_field(self, store, salt, key):
        document = self.valid_document(store, salt, key)
        document["version"] = "v2"
        write_raw(store, document)
        with pytest.raises(MalformedStoreFile):
            store.load()

    def test_unreadable_path(self, tmp_path):
        # a directory where the file should be
        store = StoreFile(tmp_path)
        with pytest.raises(StoreIOError) as excinfo:
            store.load()
        assert isinstance(excinfo.value.__cause__, OSError)
