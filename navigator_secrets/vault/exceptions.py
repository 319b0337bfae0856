"""
Vault Exceptions — error taxonomy shared by every vault component.

Low-level library errors (AEAD tag failures, sealed-box failures, base64 and
JSON decoding errors) are always translated into one of these before they
leave the package.
"""
from collections.abc import Sequence


class VaultError(Exception):
    """Base class for every error raised by the secrets vault."""


class ConfigurationError(VaultError):
    """Missing or invalid key/store paths, or an unusable crypto backend."""


class InvalidKeyError(ConfigurationError):
    """A key file is missing, unreadable, not regular, or has the wrong length."""


class MissingStoreError(ConfigurationError):
    """The secrets store file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Secrets store {path} does not exist; initialize the vault first"
        )


class FormatError(VaultError, ValueError):
    """The store is not a JSON object, or an entry is malformed."""


class InvalidSecretNameError(VaultError, ValueError):
    """A secret name does not match the namespacing pattern."""

    def __init__(self, name: str, pattern: str):
        self.name = name
        super().__init__(
            f"Invalid secret name {name!r}: names must match {pattern}"
        )


class SecretNotFoundError(VaultError, KeyError):
    """No entry exists for the requested secret name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Secret {self.name!r} not found in vault"


class DecryptionError(VaultError):
    """An entry could not be authenticated or opened with the configured keys."""


class OverwriteRequiredError(VaultError):
    """Initialization refused to clobber existing vault files."""

    def __init__(self, existing_paths: Sequence[str]):
        self.existing_paths = list(existing_paths)
        super().__init__(
            "Vault files already exist: "
            + ", ".join(self.existing_paths)
            + ". Retry with overwrite enabled to replace them."
        )


class RotationFailedError(VaultError):
    """Key rotation failed; original key files and store were restored."""


class RollbackFailedError(RotationFailedError):
    """Key rotation failed and the rollback failed too.

    The vault may hold a key pair that does not match its ciphertexts.
    Operator attention is required immediately.
    """

    def __init__(self, message: str, rollback_error: BaseException):
        self.rollback_error = rollback_error
        super().__init__(message)
