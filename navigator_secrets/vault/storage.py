"""
Store file I/O — parsing, validation and atomic persistence of the JSON store.

The store is a UTF-8 JSON object mapping secret names to compact entries,
pretty-printed with sorted keys. Forward slashes are written unescaped.
"""
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import orjson

from .config import NAME_PATTERN, is_valid_name
from .crypto import SecretEntry
from .exceptions import ConfigurationError, FormatError, InvalidSecretNameError, MissingStoreError
from .files import atomic_write

logger = logging.getLogger("navigator.secrets")

_DUMP_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS


def validate_name(name: Any) -> str:
    """Return ``name`` if it is a valid secret name.

    Raises:
        InvalidSecretNameError: If the name does not match NAME_PATTERN.
    """
    if not is_valid_name(name):
        raise InvalidSecretNameError(str(name), NAME_PATTERN)
    return name


def parse_store(raw: bytes, path: str | Path = "<memory>") -> dict[str, str]:
    """Parse store bytes into a name → compact entry mapping.

    Raises:
        FormatError: If the bytes are not a JSON object of valid entries.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as err:
        raise FormatError(f"{path} does not contain valid json: {err}") from err
    if not isinstance(data, dict):
        raise FormatError(
            f"{path} must contain a json object, got {type(data).__name__}"
        )
    for name, value in data.items():
        if not is_valid_name(name):
            raise FormatError(f"{path} contains an invalid secret name {name!r}")
        try:
            SecretEntry.parse(value)
        except FormatError as err:
            raise FormatError(f"{path}: entry {name!r} is malformed: {err}") from err
    return data


def read_store_bytes(path: str | Path) -> bytes:
    """Raw store bytes.

    Raises:
        MissingStoreError: If the file does not exist.
        ConfigurationError: If the file cannot be read.
    """
    location = Path(path)
    try:
        return location.read_bytes()
    except FileNotFoundError as err:
        raise MissingStoreError(str(location)) from err
    except OSError as err:
        raise ConfigurationError(
            f"Secrets store {location} is not readable: {err}"
        ) from err


def load_store(path: str | Path) -> dict[str, str]:
    """Read and parse the store file.

    Raises:
        MissingStoreError: If the file does not exist.
        FormatError: If the file is not a JSON object of valid entries.
    """
    return parse_store(read_store_bytes(path), path)


def dump_store(secrets: Mapping[str, str]) -> bytes:
    """Serialize entries as pretty-printed UTF-8 JSON."""
    return orjson.dumps(dict(secrets), option=_DUMP_OPTIONS) + b"\n"


def write_store(path: str | Path, secrets: Mapping[str, str]) -> None:
    """Atomically replace the store file with ``secrets``."""
    atomic_write(path, dump_store(secrets), mode=0o644)
    logger.debug("Wrote %d secret(s) to %s", len(secrets), path)


def parse_plaintext(raw: bytes, path: str | Path = "<memory>") -> dict[str, str]:
    """Parse a plaintext JSON object of secret name to string value.

    This is the layout of decrypted dumps, import files and the editor's
    temporary file.

    Raises:
        FormatError: If the bytes are not a JSON object of string values.
        InvalidSecretNameError: If a name does not match NAME_PATTERN.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as err:
        raise FormatError(f"{path} does not contain valid json: {err}") from err
    if not isinstance(data, dict):
        raise FormatError(f"{path} must contain a json object of name to value")
    for name, value in data.items():
        validate_name(name)
        if not isinstance(value, str):
            raise FormatError(
                f"secret {name!r} must be a string, got {type(value).__name__}"
            )
    return data


def read_plaintext(path: str | Path) -> dict[str, str]:
    """Read a plaintext secrets file.

    Raises:
        ConfigurationError: If the file cannot be read.
        FormatError: If the file is not a JSON object of string values.
    """
    location = Path(path)
    try:
        raw = location.read_bytes()
    except OSError as err:
        raise ConfigurationError(
            f"Plaintext secrets file {location} is not readable: {err}"
        ) from err
    return parse_plaintext(raw, location)


def write_plaintext(path: str | Path, values: Mapping[str, str]) -> None:
    """Write decrypted ``values`` to a file readable by its owner only.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    try:
        atomic_write(path, dump_store(values), mode=0o600)
    except OSError as err:
        raise ConfigurationError(
            f"Unable to write plaintext secrets to {path}: {err}"
        ) from err
    logger.debug("Wrote %d decrypted secret(s) to %s", len(values), path)
