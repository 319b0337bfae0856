"""
Vault Key Rotation — replace the key pair and re-encrypt every secret.

Rotation runs as four phases under the vault lock:

1. SNAPSHOT  — decrypt every entry with the current key pair (in memory).
2. KEYGEN    — generate the new key pair in memory; no file is touched.
3. REENCRYPT — encrypt every plaintext under the new public key (in memory).
4. COMMIT    — write the new key files, then atomically replace the store,
               then verify the committed files decrypt to the snapshot.

The original bytes of the store and both key files are captured before
phase 2. Any failure from phase 2 on restores them before raising
RotationFailedError; a failed restore raises RollbackFailedError.

Security Note:
    Plaintext exists in memory only for the duration of the rotation.
    Never log plaintext or ciphertext values.
"""
import logging
from enum import Enum
from pathlib import Path

from .crypto import decrypt, encrypt
from .exceptions import DecryptionError, RollbackFailedError, RotationFailedError
from .files import atomic_write
from .keys import generate_key_pair, write_key_pair
from .storage import read_store_bytes, write_store

logger = logging.getLogger("navigator.secrets")


class RotationPhase(str, Enum):
    SNAPSHOT = "snapshot"
    KEYGEN = "keygen"
    REENCRYPT = "reencrypt"
    COMMIT = "commit"


def _backup(store) -> list[tuple[Path, bytes, int]]:
    """Original (path, bytes, mode) of every file rotation may replace."""
    config = store.config
    return [
        (config.secrets_file, read_store_bytes(config.secrets_file), 0o644),
        (config.public_key_file, config.public_key_file.read_bytes(), 0o644),
        (config.private_key_file, config.private_key_file.read_bytes(), 0o600),
    ]


def _restore(backup: list[tuple[Path, bytes, int]]) -> None:
    for path, data, mode in backup:
        atomic_write(path, data, mode=mode)


def _verify(store, plaintexts: dict[str, str]) -> None:
    """Re-read the committed files and check every secret still opens."""
    context = store.validate(require_private_key=True)
    key_pair = context.require_key_pair()
    if set(context.secrets) != set(plaintexts):
        raise DecryptionError("Committed store does not contain the rotated entries")
    for name, value in plaintexts.items():
        if decrypt(context.secrets[name], key_pair) != value:
            raise DecryptionError(f"Re-encrypted secret {name} did not verify")


def rotate_key_pair(store) -> dict[str, int]:
    """Generate a new key pair and re-encrypt every secret under it.

    Args:
        store: SecretsStore whose key pair is rotated.

    Returns:
        Stats dict with keys: total, rotated.

    Raises:
        MissingStoreError, FormatError, InvalidKeyError, DecryptionError:
            During SNAPSHOT; nothing has been modified.
        RotationFailedError: A later phase failed; original files restored.
        RollbackFailedError: A later phase failed and restoring failed too.
    """
    config = store.config
    stats = {"total": 0, "rotated": 0}

    with store.lock():
        context = store.validate(require_private_key=True)
        key_pair = context.require_key_pair()

        phase = RotationPhase.SNAPSHOT
        logger.info(
            "Starting key rotation for %s (%d secret(s))",
            config.secrets_file, len(context.secrets),
        )
        plaintexts = {
            name: decrypt(entry, key_pair)
            for name, entry in context.secrets.items()
        }
        stats["total"] = len(plaintexts)
        backup = _backup(store)

        try:
            phase = RotationPhase.KEYGEN
            new_pair = generate_key_pair()

            phase = RotationPhase.REENCRYPT
            new_secrets = {
                name: encrypt(value, new_pair.public_key)
                for name, value in plaintexts.items()
            }

            phase = RotationPhase.COMMIT
            write_key_pair(config.public_key_file, config.private_key_file, new_pair)
            write_store(config.secrets_file, new_secrets)
            _verify(store, plaintexts)
        except BaseException as err:
            logger.warning(
                "Key rotation failed during %s; restoring original vault files",
                phase.value,
            )
            try:
                _restore(backup)
            except BaseException as rollback_err:
                logger.critical(
                    "Rollback of key rotation failed for %s: %s. "
                    "Key files may not match the stored secrets; restore them manually.",
                    config.secrets_file, rollback_err,
                )
                raise RollbackFailedError(
                    f"Key rotation failed during {phase.value} ({err}) "
                    f"and rollback failed ({rollback_err})",
                    rollback_err,
                ) from err
            if not isinstance(err, Exception):
                raise
            raise RotationFailedError(
                f"Key rotation failed during {phase.value}: {err}"
            ) from err
        finally:
            plaintexts.clear()

        stats["rotated"] = len(new_secrets)

    logger.info("Key rotation complete: %s", stats)
    return stats
