import pytest

from navigator_secrets.vault import SecretsStore, generate_key_pair


@pytest.fixture
def vault_paths(tmp_path):
    """Store and key locations inside a temporary directory."""
    return {
        "secrets_file": tmp_path / "secrets.json",
        "public_key_file": tmp_path / "secrets.pub",
        "private_key_file": tmp_path / "secrets.key",
    }


@pytest.fixture
def vault(vault_paths):
    """An initialized vault with both keys configured."""
    store = SecretsStore.from_paths(**vault_paths)
    store.initialize(overwrite_existing=True)
    return store


@pytest.fixture
def producer(vault, vault_paths):
    """A write-only view of the same vault (public key only)."""
    return SecretsStore.from_paths(
        vault_paths["secrets_file"], vault_paths["public_key_file"],
    )


@pytest.fixture
def key_pair():
    return generate_key_pair()


def _snapshot(paths) -> dict:
    return {key: path.read_bytes() for key, path in paths.items()}


@pytest.fixture
def snapshot():
    """Raw bytes of every vault file, keyed by name."""
    return _snapshot
