"""
Tests for key pair rotation.

Tests cover:
- End-to-end rotation with old key rejection
- Atomicity when a phase fails (keys and store restored byte for byte)
- Double fault reporting when the rollback fails
"""
import pytest

from navigator_secrets.vault import (
    DecryptionError,
    KeyPair,
    RollbackFailedError,
    RotationFailedError,
    decrypt,
    key_rotation,
)
from navigator_secrets.vault.storage import load_store


@pytest.fixture
def populated(vault):
    vault.add_entry("TOKEN", "abc123")
    vault.add_entry("db:url", "postgres://u:p@host/db")
    vault.add_entry("EMPTY", "")
    return vault


class TestRotation:
    def test_end_to_end(self, vault, vault_paths):
        vault.add_entry("TOKEN", "abc123")
        assert vault.decrypt("TOKEN") == "abc123"
        old_pair = KeyPair(
            public_key=vault_paths["public_key_file"].read_bytes(),
            private_key=vault_paths["private_key_file"].read_bytes(),
        )

        stats = vault.rotate_key_pair()

        assert stats == {"total": 1, "rotated": 1}
        assert vault.decrypt("TOKEN") == "abc123"
        assert vault_paths["private_key_file"].read_bytes() != old_pair.private_key
        for entry in load_store(vault_paths["secrets_file"]).values():
            with pytest.raises(DecryptionError):
                decrypt(entry, old_pair)

    def test_all_secrets_preserved(self, populated):
        before = populated.read_all()
        populated.rotate_key_pair()
        assert populated.read_all() == before

    def test_empty_store(self, vault):
        assert vault.rotate_key_pair() == {"total": 0, "rotated": 0}
        assert vault.read_all() == {}

    def test_producer_uses_new_public_key(self, populated, producer):
        populated.rotate_key_pair()
        producer.add_entry("NEW", "after-rotation")
        assert populated.decrypt("NEW") == "after-rotation"


class TestRotationAtomicity:
    def _assert_untouched(self, vault, vault_paths, snapshot, before, secrets):
        assert snapshot(vault_paths) == before
        assert vault.read_all() == secrets

    def test_failure_after_keygen(self, populated, vault_paths, snapshot, monkeypatch):
        """A failure while re-encrypting leaves every file as it was."""
        before = snapshot(vault_paths)
        secrets = populated.read_all()

        def broken_encrypt(plaintext, public_key):
            raise RuntimeError("injected encryption failure")

        monkeypatch.setattr(key_rotation, "encrypt", broken_encrypt)
        with pytest.raises(RotationFailedError) as exc:
            populated.rotate_key_pair()
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert "reencrypt" in str(exc.value)
        monkeypatch.undo()
        self._assert_untouched(populated, vault_paths, snapshot, before, secrets)

    def test_failure_during_commit(self, populated, vault_paths, snapshot, monkeypatch):
        """New key files already written are rolled back when the store write fails."""
        before = snapshot(vault_paths)
        secrets = populated.read_all()

        def broken_write_store(path, data):
            raise OSError("disk full")

        monkeypatch.setattr(key_rotation, "write_store", broken_write_store)
        with pytest.raises(RotationFailedError) as exc:
            populated.rotate_key_pair()
        assert "commit" in str(exc.value)
        monkeypatch.undo()
        self._assert_untouched(populated, vault_paths, snapshot, before, secrets)

    def test_failure_during_verification(self, populated, vault_paths, snapshot, monkeypatch):
        before = snapshot(vault_paths)
        secrets = populated.read_all()

        def broken_verify(store, plaintexts):
            raise DecryptionError("verification failed")

        monkeypatch.setattr(key_rotation, "_verify", broken_verify)
        with pytest.raises(RotationFailedError):
            populated.rotate_key_pair()
        monkeypatch.undo()
        self._assert_untouched(populated, vault_paths, snapshot, before, secrets)

    def test_snapshot_failure_modifies_nothing(self, populated, vault_paths, snapshot):
        """An entry that does not decrypt aborts before any file is touched."""
        from navigator_secrets.vault import encrypt, generate_key_pair
        from navigator_secrets.vault.storage import write_store

        secrets = load_store(vault_paths["secrets_file"])
        secrets["FOREIGN"] = encrypt("x", generate_key_pair().public_key)
        write_store(vault_paths["secrets_file"], secrets)
        before = snapshot(vault_paths)

        with pytest.raises(DecryptionError):
            populated.rotate_key_pair()
        assert snapshot(vault_paths) == before

    def test_double_fault(self, populated, vault_paths, monkeypatch):
        def broken_write_store(path, data):
            raise OSError("disk full")

        def broken_restore(backup):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(key_rotation, "write_store", broken_write_store)
        monkeypatch.setattr(key_rotation, "_restore", broken_restore)
        with pytest.raises(RollbackFailedError) as exc:
            populated.rotate_key_pair()
        assert isinstance(exc.value, RotationFailedError)
        assert isinstance(exc.value.rollback_error, OSError)
        assert isinstance(exc.value.__cause__, OSError)
        assert "disk full" in str(exc.value)
