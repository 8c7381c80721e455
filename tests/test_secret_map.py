"""
Tests for SecretMap.

Tests cover:
- Initialization from decrypted data
- Value validation (JSON values and bytes only)
- Change tracking
- Dict-like magic methods
"""
import pytest

from cli_keystore.data import BYTES_WRAPPER_KEY, SecretMap
from cli_keystore.exceptions import InvalidInput


class DummyManager:
    """Non-serializable class for testing validation."""
    def __init__(self, name: str = "default"):
        self.name = name


@pytest.fixture
def secrets():
    return SecretMap()


@pytest.fixture
def loaded():
    return SecretMap({'credentials': {'username': 'alice'}, 'authToken': 'abc'})


class TestSecretMapInitialization:
    """Tests for SecretMap initialization."""

    def test_empty(self, secrets):
        assert len(secrets) == 0
        assert secrets.is_changed is False

    def test_with_initial_data(self, loaded):
        assert loaded['authToken'] == 'abc'
        # loading is not a change
        assert loaded.is_changed is False

    def test_new_flag(self):
        assert SecretMap(new=True).new is True
        assert SecretMap().new is False

    def test_initial_data_is_validated(self):
        with pytest.raises(InvalidInput):
            SecretMap({'manager': DummyManager()})


class TestSecretMapValidation:
    """Tests for value and name validation."""

    @pytest.mark.parametrize('value', [
        'text', 42, 1.5, True, None, b'raw-bytes',
        [1, 'two', None], {'nested': {'a': [1, 2]}},
    ])
    def test_accepts_json_values(self, secrets, value):
        secrets['key'] = value
        assert secrets['key'] == value

    @pytest.mark.parametrize('value', [
        DummyManager(), {1: 'int key'}, {'nested': b'bytes'}, {'a': {1, 2}},
    ])
    def test_rejects_non_json_values(self, secrets, value):
        with pytest.raises(InvalidInput):
            secrets['key'] = value
        assert 'key' not in secrets

    @pytest.mark.parametrize('value', [
        -(2 ** 63), 2 ** 64 - 1, 1e308, {'nested': [2 ** 63]},
    ])
    def test_accepts_64_bit_numbers(self, secrets, value):
        secrets['key'] = value
        assert secrets['key'] == value

    @pytest.mark.parametrize('value', [
        2 ** 64, -(2 ** 63) - 1, [2 ** 70],
        float('inf'), float('-inf'), float('nan'), {'ratio': float('nan')},
    ])
    def test_rejects_numbers_json_cannot_hold(self, secrets, value):
        with pytest.raises(InvalidInput):
            secrets['key'] = value

    def test_rejects_tuples(self, secrets):
        # a tuple would be read back as a list
        with pytest.raises(InvalidInput):
            secrets['key'] = ('a', 'b')

    @pytest.mark.parametrize('value', [
        {BYTES_WRAPPER_KEY: 'aGk='},
        {BYTES_WRAPPER_KEY: 'not base64!'},
        {'nested': {BYTES_WRAPPER_KEY: 'aGk=', 'other': 1}},
        [{BYTES_WRAPPER_KEY: 'aGk='}],
    ])
    def test_rejects_reserved_bytes_marker(self, secrets, value):
        with pytest.raises(InvalidInput):
            secrets['key'] = value

    @pytest.mark.parametrize('name', ['', None, 42])
    def test_rejects_bad_names(self, secrets, name):
        with pytest.raises(InvalidInput):
            secrets[name] = 'value'

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            SecretMap.validate('', 'value')


class TestSecretMapState:
    """Tests for change tracking."""

    def test_changed_on_set(self, loaded):
        loaded['authToken'] = 'new'
        assert loaded.is_changed is True

    def test_changed_on_delete(self, loaded):
        del loaded['authToken']
        assert loaded.is_changed is True
        assert 'authToken' not in loaded

    def test_delete_missing_raises(self, loaded):
        with pytest.raises(KeyError):
            del loaded['missing']
        assert loaded.is_changed is False

    def test_pop_missing_is_not_a_change(self, loaded):
        assert loaded.pop('missing', None) is None
        assert loaded.is_changed is False


class TestSecretMapMagicMethods:
    """Tests for dict-like behaviour."""

    def test_iteration(self, loaded):
        assert set(loaded) == {'credentials', 'authToken'}
        assert dict(loaded.items()) == {'credentials': {'username': 'alice'}, 'authToken': 'abc'}

    def test_get_default(self, loaded):
        assert loaded.get('missing') is None
        assert loaded.get('missing', 'fallback') == 'fallback'

    def test_getitem_keyerror(self, secrets):
        with pytest.raises(KeyError):
            _ = secrets['missing']

    def test_repr_hides_values(self, loaded):
        text = repr(loaded)
        assert 'authToken' in text
        assert 'abc' not in text
        assert 'alice' not in text
