"""Secrets Vault — Encrypted named secrets stored in a JSON file.

Each secret is AES-256-GCM encrypted under its own content key, which is
sealed to the vault's X25519 public key. Producers holding only the public
key can add secrets; reading requires the full key pair.

Security Note (Threat Model):
    Decrypted secrets and the private key live in process memory while an
    operation runs. Buffers we own are zeroed afterwards, but copies made by
    the Python runtime or crypto libraries cannot be wiped. This is an
    accepted limitation.
"""

from .config import VaultConfig, KEY_LENGTH, NAME_PATTERN, is_valid_name
from .crypto import SecretEntry, encrypt, decrypt, ensure_aead_available
from .exceptions import (
    VaultError,
    ConfigurationError,
    InvalidKeyError,
    MissingStoreError,
    FormatError,
    InvalidSecretNameError,
    SecretNotFoundError,
    DecryptionError,
    OverwriteRequiredError,
    RotationFailedError,
    RollbackFailedError,
)
from .keys import (
    KeyPair,
    generate_key_pair,
    load_public_key,
    load_private_key,
    load_key_pair,
    write_key_pair,
)
from .key_rotation import RotationPhase, rotate_key_pair
from .resolver import SecretResolver
from .store import SecretsStore, VaultContext

__all__ = [
    "VaultConfig",
    "KEY_LENGTH",
    "NAME_PATTERN",
    "is_valid_name",
    "SecretEntry",
    "encrypt",
    "decrypt",
    "ensure_aead_available",
    "VaultError",
    "ConfigurationError",
    "InvalidKeyError",
    "MissingStoreError",
    "FormatError",
    "InvalidSecretNameError",
    "SecretNotFoundError",
    "DecryptionError",
    "OverwriteRequiredError",
    "RotationFailedError",
    "RollbackFailedError",
    "KeyPair",
    "generate_key_pair",
    "load_public_key",
    "load_private_key",
    "load_key_pair",
    "write_key_pair",
    "RotationPhase",
    "rotate_key_pair",
    "SecretResolver",
    "SecretsStore",
    "VaultContext",
]
