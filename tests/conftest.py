import pytest

from cli_keystore.vault import CredentialStore, StoreConfig


class ScriptedPrompt:
    """Prompt double answering from a fixed script and recording questions."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked = []

    def feed(self, *answers):
        self.answers.extend(answers)

    def __call__(self, message, secret=False):
        self.asked.append((message, secret))
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message!r}")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    @property
    def secret_prompts(self):
        return [message for message, secret in self.asked if secret]


@pytest.fixture
def config(tmp_path):
    """StoreConfig rooted in a temporary directory."""
    return StoreConfig(config_dir=tmp_path / "keystore")


@pytest.fixture
def prompt():
    return ScriptedPrompt()


@pytest.fixture
def make_store(config):
    """Build a fresh CredentialStore, as a new CLI process would."""
    def _make(prompt):
        return CredentialStore(config=config, prompt=prompt)
    return _make
