"""
Vault Keys — generation, loading, validation and writing of the key pair.

Keys are X25519 (Curve25519) keys stored as two independent raw-binary
files of exactly 32 bytes each.

Security Note:
    Never log key material. Only log key file locations.
"""
import os
import stat
import logging
from dataclasses import dataclass
from pathlib import Path

from nacl.public import PrivateKey

from .config import KEY_LENGTH
from .exceptions import InvalidKeyError
from .files import atomic_write

logger = logging.getLogger("navigator.secrets")

PathLike = str | os.PathLike


@dataclass(frozen=True)
class KeyPair:
    """Raw public/private key bytes, each KEY_LENGTH long."""

    public_key: bytes
    private_key: bytes

    def __post_init__(self):
        for label, value in (("public", self.public_key), ("private", self.private_key)):
            if len(value) != KEY_LENGTH:
                raise InvalidKeyError(
                    f"{label} key must be exactly {KEY_LENGTH} bytes, got {len(value)}"
                )

    def __repr__(self) -> str:
        # keep private material out of tracebacks and logs
        return f"KeyPair(public_key={self.public_key.hex()[:16]}..., private_key=<hidden>)"


def generate_key_pair() -> KeyPair:
    """Generate a fresh X25519 key pair in memory."""
    private = PrivateKey.generate()
    return KeyPair(
        public_key=bytes(private.public_key),
        private_key=bytes(private),
    )


def _read_key(path: PathLike, label: str) -> bytes:
    """Read a raw key, requiring a local, readable, regular file of KEY_LENGTH bytes."""
    location = Path(path)
    try:
        info = location.stat()
    except FileNotFoundError as err:
        raise InvalidKeyError(
            f"{label} key file {location} does not exist"
        ) from err
    except OSError as err:
        raise InvalidKeyError(
            f"{label} key file {location} is not accessible: {err}"
        ) from err
    if not stat.S_ISREG(info.st_mode):
        raise InvalidKeyError(f"{label} key file {location} is not a regular file")
    if info.st_size != KEY_LENGTH:
        raise InvalidKeyError(
            f"{label} key file {location} must be exactly {KEY_LENGTH} bytes, "
            f"got {info.st_size}"
        )
    try:
        data = location.read_bytes()
    except OSError as err:
        raise InvalidKeyError(
            f"{label} key file {location} is not readable: {err}"
        ) from err
    # the file may have changed between stat() and read()
    if len(data) != KEY_LENGTH:
        raise InvalidKeyError(
            f"{label} key file {location} must be exactly {KEY_LENGTH} bytes, "
            f"got {len(data)}"
        )
    return data


def load_public_key(path: PathLike) -> bytes:
    """Load the raw public key.

    Raises:
        InvalidKeyError: If the file is missing, unreadable or the wrong length.
    """
    return _read_key(path, "public")


def load_private_key(path: PathLike) -> bytes:
    """Load the raw private key.

    Raises:
        InvalidKeyError: If the file is missing, unreadable or the wrong length.
    """
    return _read_key(path, "private")


def load_key_pair(public_path: PathLike, private_path: PathLike) -> KeyPair:
    """Load both keys and check that the private key matches the public key.

    Raises:
        InvalidKeyError: If either file is invalid or the keys do not belong together.
    """
    pair = KeyPair(
        public_key=load_public_key(public_path),
        private_key=load_private_key(private_path),
    )
    if bytes(PrivateKey(pair.private_key).public_key) != pair.public_key:
        raise InvalidKeyError(
            f"private key {private_path} does not match public key {public_path}"
        )
    return pair


def write_key_pair(public_path: PathLike, private_path: PathLike, pair: KeyPair) -> None:
    """Write both key files. Overwrite policy belongs to the caller."""
    atomic_write(public_path, pair.public_key, mode=0o644)
    atomic_write(private_path, pair.private_key, mode=0o600)
    logger.info(
        "Wrote key pair: public=%s private=%s", public_path, private_path,
    )
