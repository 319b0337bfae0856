"""File primitives shared by the vault: atomic replacement and advisory locking."""
import fcntl
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger("navigator.secrets")


def atomic_write(path: str | os.PathLike, data: bytes, mode: int = 0o600) -> None:
    """Replace ``path`` with ``data`` so readers never observe a partial file.

    The bytes go to a temporary file in the same directory, are fsynced,
    and the temporary file is renamed over the target.
    """
    location = Path(path)
    fd, tmp = tempfile.mkstemp(
        prefix=f".{location.name}.", suffix=".tmp", dir=location.parent,
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, location)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


@contextmanager
def exclusive_lock(lock_path: str | os.PathLike) -> Iterator[None]:
    """Hold an exclusive ``flock`` on ``lock_path`` until the block exits.

    Blocks until any other process holding the lock releases it. The lock
    file is left in place; only the lock is released. Not reentrant: a
    process must not take the same lock twice.

    Raises:
        ConfigurationError: If the lock file cannot be opened.
    """
    try:
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as err:
        raise ConfigurationError(
            f"Unable to open vault lock file {lock_path}: {err}"
        ) from err
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        logger.debug("Acquired vault lock %s", lock_path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released vault lock %s", lock_path)
    finally:
        os.close(fd)
