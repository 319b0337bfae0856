"""Tests for SecretResolver."""
import pytest

from navigator_secrets.vault import SecretNotFoundError, SecretResolver


@pytest.fixture
def resolver(vault):
    vault.add_entry("db:password", "hunter2")
    return SecretResolver(vault)


class TestSecretResolver:
    def test_decrypt(self, resolver):
        assert resolver.decrypt("db:password") == "hunter2"

    def test_resolve_reference(self, resolver):
        assert resolver.resolve("secret:db:password") == "hunter2"

    @pytest.mark.parametrize("value", ["plain", "", 42, None, "Secret:db:password"])
    def test_non_references_unchanged(self, resolver, value):
        assert resolver.resolve(value) == value

    def test_missing_reference(self, resolver):
        with pytest.raises(SecretNotFoundError):
            resolver.resolve("secret:nope")

    def test_resolve_mapping(self, resolver):
        settings = {"host": "db", "password": "secret:db:password", "port": 5432}
        assert resolver.resolve_mapping(settings) == {
            "host": "db", "password": "hunter2", "port": 5432,
        }

    def test_any_vault_with_decrypt(self):
        class StaticVault:
            def decrypt(self, name):
                return name.upper()

        assert SecretResolver(StaticVault()).resolve("secret:abc") == "ABC"
