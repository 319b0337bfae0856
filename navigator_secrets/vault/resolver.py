"""Secret resolution for configuration values of the form ``secret:NAME``."""
import logging

logger = logging.getLogger("navigator.secrets")

SECRET_PREFIX = "secret:"


class SecretResolver:
    """Resolves secret references against a vault.

    The vault only needs to provide ``decrypt(name) -> str``.
    """

    def __init__(self, vault, prefix: str = SECRET_PREFIX):
        self._vault = vault
        self._prefix = prefix

    def decrypt(self, name: str) -> str:
        return self._vault.decrypt(name)

    def is_reference(self, value) -> bool:
        return isinstance(value, str) and value.startswith(self._prefix)

    def resolve(self, value):
        """Return the secret for a ``secret:NAME`` reference, else ``value`` unchanged."""
        if not self.is_reference(value):
            return value
        name = value[len(self._prefix):]
        logger.debug("Resolving secret reference %s", name)
        return self.decrypt(name)

    def resolve_mapping(self, values: dict) -> dict:
        """Resolve every secret reference among the values of ``values``."""
        return {key: self.resolve(value) for key, value in values.items()}
