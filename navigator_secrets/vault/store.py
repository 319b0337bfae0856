"""
SecretsStore — file-backed mapping of secret name to encrypted entry.

Provides the public API of the vault:
- ``initialize(overwrite_existing)`` — create an empty store and a fresh key pair
- ``add_entry(name, plaintext)`` — encrypt with the public key and persist
- ``get_secret(name)`` / ``decrypt(name)`` — decrypt with the full key pair
- ``remove_entry(name)`` / ``list_names()`` / ``read_all()``
- ``import_plaintext(mapping)`` — replace the store from plaintext values
- ``edit()`` / ``rotate_key_pair()`` — editor workflow and key rotation

Every operation re-validates the files it needs and works from a fresh
``VaultContext``; nothing decoded is cached between calls. Mutations hold
an exclusive advisory lock and rewrite the whole store atomically.

Security Note:
    Never log plaintext or ciphertext values. Only log secret names and paths.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .config import VaultConfig
from .crypto import decrypt as decrypt_entry, encrypt as encrypt_entry
from .editor import edit_secrets
from .exceptions import (
    ConfigurationError,
    FormatError,
    OverwriteRequiredError,
    SecretNotFoundError,
)
from .files import atomic_write, exclusive_lock
from .key_rotation import rotate_key_pair
from .keys import KeyPair, generate_key_pair, load_key_pair, load_public_key, write_key_pair
from .storage import load_store, validate_name, write_store

logger = logging.getLogger("navigator.secrets")


@dataclass(frozen=True)
class VaultContext:
    """Freshly validated vault state for a single operation."""

    secrets: dict[str, str] = field(repr=False)
    public_key: bytes = field(repr=False)
    key_pair: KeyPair | None = field(default=None, repr=False)

    def require_key_pair(self) -> KeyPair:
        if self.key_pair is None:
            raise ConfigurationError(
                "A private key file must be configured to read secrets"
            )
        return self.key_pair


class SecretsStore:
    """Encrypted secrets vault backed by a JSON file and two key files.

    Producers configured with only the public key can add entries;
    reading requires the private key as well.
    """

    def __init__(self, config: VaultConfig):
        self.config = config

    @classmethod
    def from_env(cls) -> "SecretsStore":
        return cls(VaultConfig.from_env())

    @classmethod
    def from_paths(
        cls,
        secrets_file: str | Path,
        public_key_file: str | Path,
        private_key_file: str | Path | None = None,
        **kwargs,
    ) -> "SecretsStore":
        return cls(
            VaultConfig.create(
                secrets_file=secrets_file,
                public_key_file=public_key_file,
                private_key_file=private_key_file,
                **kwargs,
            )
        )

    @property
    def path(self) -> Path:
        return self.config.secrets_file

    def lock(self):
        """Exclusive advisory lock guarding every mutation of this vault."""
        return exclusive_lock(self.config.lock_file)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, require_private_key: bool = False) -> VaultContext:
        """Re-read and validate the vault files.

        Called before every mutating or decrypting operation, since the
        files may change between calls.

        Raises:
            MissingStoreError: If the store file is absent.
            FormatError: If the store is not a JSON object of valid entries.
            InvalidKeyError: If a required key file is invalid.
            ConfigurationError: If the private key is required but not configured.
        """
        secrets = load_store(self.config.secrets_file)
        if require_private_key:
            if self.config.private_key_file is None:
                raise ConfigurationError(
                    "A private key file must be configured to read secrets"
                )
            key_pair = load_key_pair(
                self.config.public_key_file, self.config.private_key_file,
            )
            return VaultContext(secrets, key_pair.public_key, key_pair)
        public_key = load_public_key(self.config.public_key_file)
        return VaultContext(secrets, public_key)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def existing_paths(self) -> list[str]:
        """Vault files that already exist on disk."""
        candidates = [self.config.secrets_file, self.config.public_key_file]
        if self.config.private_key_file is not None:
            candidates.append(self.config.private_key_file)
        return [str(p) for p in candidates if p.exists()]

    def _backup(self) -> list[tuple[Path, bytes | None, int]]:
        """Current (path, bytes, mode) of the vault files; None if absent."""
        files = [
            (self.config.secrets_file, 0o644),
            (self.config.public_key_file, 0o644),
            (self.config.private_key_file, 0o600),
        ]
        return [
            (path, path.read_bytes() if path.exists() else None, mode)
            for path, mode in files
        ]

    def _restore(self, backup: list[tuple[Path, bytes | None, int]]) -> None:
        try:
            for path, data, mode in backup:
                if data is None:
                    path.unlink(missing_ok=True)
                else:
                    atomic_write(path, data, mode=mode)
        except OSError as err:
            logger.critical(
                "Unable to restore vault files for %s: %s", self.config.secrets_file, err,
            )
            raise ConfigurationError(
                f"Vault initialization failed and restoring the previous files failed: {err}"
            ) from err

    def initialize(self, overwrite_existing: bool = False) -> KeyPair:
        """Create an empty store and a fresh key pair.

        Args:
            overwrite_existing: Replace any existing store or key files.

        Returns:
            The newly generated key pair.

        Raises:
            OverwriteRequiredError: If files exist and overwriting was not allowed.
            ConfigurationError: If no private key location is configured or the
                store directory is missing, or a write failed. On a
                failed write the previous files are restored.
        """
        if self.config.private_key_file is None:
            raise ConfigurationError(
                "A private key file location is required to initialize the vault"
            )
        for location in (
            self.config.secrets_file,
            self.config.public_key_file,
            self.config.private_key_file,
        ):
            if not location.parent.is_dir():
                raise ConfigurationError(
                    f"{location} must be located in an existing, writable directory"
                )
        with self.lock():
            if not overwrite_existing:
                existing = self.existing_paths()
                if existing:
                    raise OverwriteRequiredError(existing)
            key_pair = generate_key_pair()
            try:
                backup = self._backup()
            except OSError as err:
                raise ConfigurationError(
                    f"Unable to read existing vault files: {err}"
                ) from err
            try:
                # an empty store is valid under any key pair, so it goes first
                write_store(self.config.secrets_file, {})
                write_key_pair(
                    self.config.public_key_file,
                    self.config.private_key_file,
                    key_pair,
                )
            except OSError as err:
                logger.warning(
                    "Initializing %s failed; restoring previous vault files",
                    self.config.secrets_file,
                )
                self._restore(backup)
                raise ConfigurationError(
                    f"Unable to initialize vault files: {err}"
                ) from err
        logger.info("Initialized empty secrets vault at %s", self.config.secrets_file)
        return key_pair

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_entry(self, name: str, plaintext: str) -> None:
        """Encrypt ``plaintext`` under ``name``, inserting or overwriting.

        Raises:
            InvalidSecretNameError: Before any I/O, if the name is invalid.
        """
        validate_name(name)
        if not isinstance(plaintext, str):
            raise TypeError(
                f"secret value must be a string, got {type(plaintext).__name__}"
            )
        with self.lock():
            context = self.validate()
            secrets = dict(context.secrets)
            action = "updated" if name in secrets else "created"
            secrets[name] = encrypt_entry(plaintext, context.public_key)
            write_store(self.config.secrets_file, secrets)
        logger.debug("Vault %s: %s", action, name)

    def remove_entry(self, name: str) -> None:
        """Delete the entry for ``name``.

        Raises:
            SecretNotFoundError: If no such entry exists.
        """
        validate_name(name)
        with self.lock():
            secrets = dict(self.validate().secrets)
            if name not in secrets:
                raise SecretNotFoundError(name)
            del secrets[name]
            write_store(self.config.secrets_file, secrets)
        logger.debug("Vault removed: %s", name)

    def import_plaintext(self, values: Mapping[str, str]) -> int:
        """Replace the whole store with freshly encrypted ``values``.

        Every name is validated before anything is encrypted or written.

        Returns:
            Number of entries written.
        """
        for name, value in values.items():
            validate_name(name)
            if not isinstance(value, str):
                raise FormatError(
                    f"secret {name!r} must be a string, got {type(value).__name__}"
                )
        with self.lock():
            context = self.validate()
            secrets = {
                name: encrypt_entry(value, context.public_key)
                for name, value in values.items()
            }
            write_store(self.config.secrets_file, secrets)
        logger.info("Imported %d secret(s) into %s", len(secrets), self.config.secrets_file)
        return len(secrets)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_names(self) -> list[str]:
        """Sorted secret names. Nothing is decrypted."""
        return sorted(load_store(self.config.secrets_file))

    def get_secret(self, name: str) -> str:
        """Decrypt and return a secret.

        Raises:
            ConfigurationError: If no private key is configured.
            SecretNotFoundError: If the name is absent.
            DecryptionError: If the entry does not open with the key pair.
        """
        context = self.validate(require_private_key=True)
        if name not in context.secrets:
            raise SecretNotFoundError(name)
        return decrypt_entry(context.secrets[name], context.require_key_pair())

    def decrypt(self, name: str) -> str:
        """Resolve a secret by name; the entry point used by secret consumers."""
        return self.get_secret(name)

    def read_all(self) -> dict[str, str]:
        """Decrypt every entry.

        Raises:
            DecryptionError: If any entry fails to decrypt.
        """
        context = self.validate(require_private_key=True)
        key_pair = context.require_key_pair()
        return {
            name: decrypt_entry(entry, key_pair)
            for name, entry in context.secrets.items()
        }

    def __contains__(self, name: str) -> bool:
        return name in load_store(self.config.secrets_file)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def edit(self, runner: Callable[[str, str], None] | None = None) -> dict[str, list[str]]:
        """Open the decrypted secrets in the configured editor and re-encrypt."""
        return edit_secrets(self, runner=runner)

    def rotate_key_pair(self) -> dict[str, int]:
        """Replace the key pair and re-encrypt every secret under it."""
        return rotate_key_pair(self)
