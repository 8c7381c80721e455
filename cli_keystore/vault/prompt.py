"""
Vault Prompt — Interactive terminal input for passwords and menu choices.

Any callable with the signature ``(message: str, secret: bool) -> str``
(or returning an awaitable of str) can replace ``prompt_user`` in
:class:`~cli_keystore.vault.credential_store.CredentialStore`.
"""
import getpass
import inspect
from typing import Awaitable, Callable, Union

Prompt = Callable[[str, bool], Union[str, Awaitable[str]]]


def prompt_user(message: str, secret: bool = False) -> str:
    """Ask the user for a value on the terminal.

    Uses getpass for secrets so the entry is not echoed.
    """
    if secret:
        return getpass.getpass(f"{message} ")
    return input(f"{message} ")


async def ask(prompt: Prompt, message: str, secret: bool = False) -> str:
    """Call ``prompt`` and normalize the answer.

    An interrupt or end-of-file while waiting for input counts as a
    cancelled (empty) entry.
    """
    try:
        answer = prompt(message, secret)
        if inspect.isawaitable(answer):
            answer = await answer
    except (KeyboardInterrupt, EOFError):
        return ""
    return answer or ""
