"""
Vault Crypto Core — per-secret envelope encryption and compact serialization.

Each secret is protected by its own random Content Encryption Key (CEK):
- Content layer: AES-256-GCM(CEK, nonce, AAD=header) → ciphertext + tag
- Key layer: X25519 sealed box (anonymous) of the CEK to the vault public key

Serialized entry (JWE-style compact form), five base64url fields joined by ".":
    header . encrypted_cek . nonce . ciphertext . auth_tag

Security Note:
    Never log plaintext, CEKs, or ciphertext values.
    Only the bytearray copies of CEKs and private keys made here are zeroed
    after use. The immutable bytes handed to or returned by cryptography
    and PyNaCl stay in memory until garbage collected; this is best-effort
    hygiene, not a guarantee that key material leaves memory.
    Nonces are random 96-bit; collision probability negligible under normal usage.
    Wrong keys and tampered entries raise the same DecryptionError.
"""
import base64
import binascii
import functools
import logging
import os
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox

from .config import KEY_LENGTH
from .exceptions import ConfigurationError, DecryptionError, FormatError, InvalidKeyError
from .keys import KeyPair

logger = logging.getLogger("navigator.secrets")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
CEK_SIZE = 32  # AES-256
FIELD_COUNT = 5

# Versioned algorithm header, authenticated as AAD.
HEADER = b'{"alg":"X25519-XSalsa20-Poly1305","enc":"A256GCM","v":1}'

_DECRYPT_FAILED = "Unable to decrypt secret. Verify the configured key pair"
_B64URL_RE = re.compile(r"[A-Za-z0-9_-]*={0,2}")


@functools.lru_cache(maxsize=None)
def ensure_aead_available() -> None:
    """Probe once per process that AES-256-GCM is usable.

    Raises:
        ConfigurationError: If the crypto backend lacks AES-GCM.
    """
    try:
        probe = AESGCM(bytes(CEK_SIZE))
        probe.decrypt(bytes(NONCE_SIZE), probe.encrypt(bytes(NONCE_SIZE), b"probe", HEADER), HEADER)
    except (UnsupportedAlgorithm, InvalidTag) as err:
        raise ConfigurationError(
            f"AES-256-GCM is not available in this crypto backend: {err}"
        ) from err
    logger.debug("AEAD capability probe passed (A256GCM)")


@contextmanager
def wiped(buffer: bytearray) -> Iterator[bytearray]:
    """Yield ``buffer`` and zero it on exit, success or failure.

    Only ``buffer`` itself is cleared; any ``bytes`` made from it are not.
    """
    try:
        yield buffer
    finally:
        for i in range(len(buffer)):
            buffer[i] = 0


# ---------------------------------------------------------------------------
# base64url helpers
# ---------------------------------------------------------------------------

def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode unpadded (or padded) base64url, rejecting foreign characters.

    Raises:
        binascii.Error: If ``data`` uses characters outside the url-safe
            alphabet, including the standard ``+`` and ``/``.
    """
    if _B64URL_RE.fullmatch(data) is None:
        raise binascii.Error("data contains characters outside the base64url alphabet")
    padded = data + "=" * (-len(data) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


# ---------------------------------------------------------------------------
# Entry model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SecretEntry:
    """Decoded envelope of a single secret."""

    header: bytes
    encrypted_key: bytes
    nonce: bytes
    ciphertext: bytes
    auth_tag: bytes

    def compact(self) -> str:
        """Serialize as five dot-joined base64url fields."""
        return ".".join(
            b64url_encode(part)
            for part in (
                self.header,
                self.encrypted_key,
                self.nonce,
                self.ciphertext,
                self.auth_tag,
            )
        )

    @classmethod
    def parse(cls, compacted: str) -> "SecretEntry":
        """Parse a compact entry.

        Raises:
            FormatError: If the entry is not five valid base64url fields with
                a known header and correctly sized nonce and tag.
        """
        if not isinstance(compacted, str):
            raise FormatError(
                f"Secret entry must be a string, got {type(compacted).__name__}"
            )
        parts = compacted.split(".")
        if len(parts) != FIELD_COUNT:
            raise FormatError(
                f"Secret entry must contain {FIELD_COUNT} fields, got {len(parts)}"
            )
        try:
            header, encrypted_key, nonce, ciphertext, auth_tag = (
                b64url_decode(part) for part in parts
            )
        except (binascii.Error, ValueError) as err:
            raise FormatError(f"Secret entry is not valid base64url: {err}") from err
        if header != HEADER:
            raise FormatError("Secret entry has an unsupported algorithm header")
        if len(nonce) != NONCE_SIZE:
            raise FormatError(
                f"Secret entry nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
            )
        if len(auth_tag) != TAG_SIZE:
            raise FormatError(
                f"Secret entry tag must be {TAG_SIZE} bytes, got {len(auth_tag)}"
            )
        return cls(header, encrypted_key, nonce, ciphertext, auth_tag)


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt(plaintext: str, public_key: bytes) -> str:
    """Encrypt a secret for the holder of ``public_key``.

    Args:
        plaintext: Secret value.
        public_key: Raw 32-byte vault public key.

    Returns:
        Compact serialized entry.

    Raises:
        FormatError: If ``plaintext`` cannot be encoded as UTF-8.
        InvalidKeyError: If ``public_key`` is not 32 bytes.
    """
    ensure_aead_available()
    try:
        data = plaintext.encode("utf-8")
    except UnicodeEncodeError as err:
        raise FormatError(
            f"secret value cannot be encoded as UTF-8: {err.reason}"
        ) from None
    if len(public_key) != KEY_LENGTH:
        raise InvalidKeyError(
            f"public key must be exactly {KEY_LENGTH} bytes, got {len(public_key)}"
        )
    with wiped(bytearray(AESGCM.generate_key(bit_length=256))) as cek:
        encrypted_key = SealedBox(PublicKey(public_key)).encrypt(bytes(cek))
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(bytes(cek)).encrypt(nonce, data, HEADER)
    entry = SecretEntry(
        header=HEADER,
        encrypted_key=encrypted_key,
        nonce=nonce,
        ciphertext=sealed[:-TAG_SIZE],
        auth_tag=sealed[-TAG_SIZE:],
    )
    return entry.compact()


def decrypt(compacted: str, key_pair: KeyPair) -> str:
    """Decrypt a compact entry with the full vault key pair.

    Raises:
        FormatError: If the entry is malformed.
        InvalidKeyError: If the private key does not match the public key.
        DecryptionError: If the CEK cannot be unsealed or the content fails
            authentication.
    """
    ensure_aead_available()
    entry = SecretEntry.parse(compacted)
    with wiped(bytearray(key_pair.private_key)) as private_buf:
        private = PrivateKey(bytes(private_buf))
        if bytes(private.public_key) != key_pair.public_key:
            raise InvalidKeyError("private key does not match the configured public key")
        try:
            raw_cek = SealedBox(private).decrypt(entry.encrypted_key)
        except CryptoError:
            raise DecryptionError(_DECRYPT_FAILED) from None
    with wiped(bytearray(raw_cek)) as cek:
        if len(cek) != CEK_SIZE:
            raise DecryptionError(_DECRYPT_FAILED)
        try:
            plaintext = AESGCM(bytes(cek)).decrypt(
                entry.nonce, entry.ciphertext + entry.auth_tag, entry.header,
            )
        except InvalidTag:
            raise DecryptionError(_DECRYPT_FAILED) from None
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError(_DECRYPT_FAILED) from None
