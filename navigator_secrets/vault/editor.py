"""
Editor workflow — decrypt to a temporary file, edit, re-encrypt.

The decrypted secrets are written as a JSON object to a private temporary
file, the editor runs on it and blocks until it exits, and the edited file
is re-encrypted into the store. The temporary file is overwritten and
removed on every exit path.
"""
import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Callable

from .crypto import decrypt, encrypt
from .exceptions import ConfigurationError
from .storage import dump_store, read_plaintext, write_store

logger = logging.getLogger("navigator.secrets")

EditorRunner = Callable[[str, str], None]


def run_editor(editor: str, path: str) -> None:
    """Run ``editor`` on ``path`` and wait for it to exit.

    The exit status is not interpreted; the edited file is the result.

    Raises:
        ConfigurationError: If the editor command cannot be started.
    """
    command = shlex.split(editor) + [path]
    try:
        subprocess.run(command, check=False)
    except OSError as err:
        raise ConfigurationError(f"Unable to start editor {editor!r}: {err}") from err


def _shred(path: str) -> None:
    try:
        size = os.path.getsize(path)
        with open(path, "r+b") as fh:
            fh.write(b"\0" * size)
            fh.flush()
            os.fsync(fh.fileno())
    except FileNotFoundError:
        return
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def edit_secrets(store, runner: EditorRunner | None = None) -> dict[str, list[str]]:
    """Interactively edit every secret of ``store``.

    Args:
        store: SecretsStore configured with both keys.
        runner: Callable ``(editor, path)`` that blocks until editing is done.

    Returns:
        Names grouped as ``added``, ``removed`` and ``changed``.
    """
    runner = runner or run_editor
    config = store.config
    with store.lock():
        context = store.validate(require_private_key=True)
        key_pair = context.require_key_pair()
        current = {
            name: decrypt(entry, key_pair)
            for name, entry in context.secrets.items()
        }
        fd, path = tempfile.mkstemp(prefix="secrets-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(dump_store(current))
            runner(config.editor, path)
            edited = read_plaintext(path)
            secrets = {
                name: encrypt(value, context.public_key)
                for name, value in edited.items()
            }
            write_store(config.secrets_file, secrets)
        finally:
            _shred(path)
    changes = {
        "added": sorted(set(edited) - set(current)),
        "removed": sorted(set(current) - set(edited)),
        "changed": sorted(
            name for name in set(edited) & set(current)
            if edited[name] != current[name]
        ),
    }
    logger.info(
        "Edited secrets in %s: %d added, %d removed, %d changed",
        config.secrets_file,
        len(changes["added"]), len(changes["removed"]), len(changes["changed"]),
    )
    return changes
