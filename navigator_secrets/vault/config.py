"""
Vault Configuration — validated file locations for the secrets vault.

Reads locations from environment variables:
    VAULT_SECRETS_FILE = <path to the JSON secrets store>
    VAULT_PUBLIC_KEY_FILE = <path to the 32-byte public key>
    VAULT_PRIVATE_KEY_FILE = <path to the 32-byte private key> (optional)
    VAULT_EDITOR = <editor command> (falls back to EDITOR, then "vi")

A producer that only adds secrets needs the public key; reading secrets
requires the private key as well.

Security Note:
    Never log key material. Only log file locations.
"""
import os
import re
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError

logger = logging.getLogger("navigator.secrets")

KEY_LENGTH = 32  # X25519 public and private keys

NAME_PATTERN = r"(\w+:)*\w+"
_NAME_RE = re.compile(NAME_PATTERN)

DEFAULT_EDITOR = "vi"


def is_valid_name(name: str) -> bool:
    """Return True if ``name`` is a colon-namespaced secret name."""
    return isinstance(name, str) and _NAME_RE.fullmatch(name) is not None


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ConfigurationError(
            f"{name} environment variable is not set"
        )
    return value


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    secrets_file: Path
    public_key_file: Path
    private_key_file: Path | None = None
    editor: str = Field(default=DEFAULT_EDITOR, min_length=1)

    @field_validator("secrets_file", "public_key_file", "private_key_file", mode="before")
    @classmethod
    def validate_path(cls, v):
        """Reject empty path strings."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("path cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_distinct_keys(self) -> "VaultConfig":
        """Public and private keys must live in separate files."""
        if (
            self.private_key_file is not None
            and Path(os.path.abspath(self.private_key_file))
            == Path(os.path.abspath(self.public_key_file))
        ):
            raise ValueError(
                "public_key_file and private_key_file must be different files"
            )
        return self

    @property
    def lock_file(self) -> Path:
        """Sidecar file used for the exclusive advisory lock."""
        return self.secrets_file.with_name(self.secrets_file.name + ".lock")

    @property
    def can_decrypt(self) -> bool:
        return self.private_key_file is not None

    @classmethod
    def create(cls, **values) -> "VaultConfig":
        """Build a VaultConfig, translating validation errors.

        Raises:
            ConfigurationError: If any value fails validation.
        """
        try:
            return cls(**values)
        except ValidationError as err:
            raise ConfigurationError(
                f"Invalid vault configuration: {err}"
            ) from err

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        secrets_file = _require_env("VAULT_SECRETS_FILE")
        public_key_file = _require_env("VAULT_PUBLIC_KEY_FILE")
        private_key_file = os.environ.get("VAULT_PRIVATE_KEY_FILE") or None
        editor = (
            os.environ.get("VAULT_EDITOR")
            or os.environ.get("EDITOR")
            or DEFAULT_EDITOR
        )
        logger.debug(
            "Vault configured from environment: store=%s public_key=%s private_key=%s",
            secrets_file, public_key_file, private_key_file,
        )
        return cls.create(
            secrets_file=secrets_file,
            public_key_file=public_key_file,
            private_key_file=private_key_file,
            editor=editor,
        )
