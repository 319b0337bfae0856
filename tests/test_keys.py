"""Tests for key pair generation, loading and writing."""
import os

import pytest

from navigator_secrets.vault import (
    KEY_LENGTH,
    InvalidKeyError,
    KeyPair,
    generate_key_pair,
    load_key_pair,
    load_private_key,
    load_public_key,
    write_key_pair,
)


class TestGenerate:
    def test_lengths(self):
        pair = generate_key_pair()
        assert len(pair.public_key) == KEY_LENGTH
        assert len(pair.private_key) == KEY_LENGTH

    def test_unique(self):
        assert generate_key_pair() != generate_key_pair()

    def test_repr_hides_private_key(self, key_pair):
        assert key_pair.private_key.hex() not in repr(key_pair)

    def test_wrong_length_rejected(self):
        with pytest.raises(InvalidKeyError):
            KeyPair(public_key=b"x" * 31, private_key=b"y" * 32)


class TestWriteAndLoad:
    def test_roundtrip(self, tmp_path, key_pair):
        pub, priv = tmp_path / "k.pub", tmp_path / "k.key"
        write_key_pair(pub, priv, key_pair)
        assert pub.read_bytes() == key_pair.public_key
        assert priv.read_bytes() == key_pair.private_key
        assert load_key_pair(pub, priv) == key_pair

    def test_private_key_permissions(self, tmp_path, key_pair):
        pub, priv = tmp_path / "k.pub", tmp_path / "k.key"
        write_key_pair(pub, priv, key_pair)
        assert os.stat(priv).st_mode & 0o777 == 0o600

    def test_overwrite(self, tmp_path, key_pair):
        pub, priv = tmp_path / "k.pub", tmp_path / "k.key"
        write_key_pair(pub, priv, generate_key_pair())
        write_key_pair(pub, priv, key_pair)
        assert load_public_key(pub) == key_pair.public_key

    def test_no_temp_files_left(self, tmp_path, key_pair):
        write_key_pair(tmp_path / "k.pub", tmp_path / "k.key", key_pair)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.key", "k.pub"]


class TestInvalidKeyFiles:
    def test_missing(self, tmp_path):
        with pytest.raises(InvalidKeyError):
            load_public_key(tmp_path / "absent.pub")

    @pytest.mark.parametrize("size", [0, 31, 33, 64])
    def test_wrong_size(self, tmp_path, size):
        path = tmp_path / "bad.key"
        path.write_bytes(b"k" * size)
        with pytest.raises(InvalidKeyError):
            load_private_key(path)

    def test_directory(self, tmp_path):
        with pytest.raises(InvalidKeyError):
            load_public_key(tmp_path)

    def test_mismatched_pair(self, tmp_path, key_pair):
        pub, priv = tmp_path / "k.pub", tmp_path / "k.key"
        write_key_pair(pub, priv, key_pair)
        priv.write_bytes(generate_key_pair().private_key)
        with pytest.raises(InvalidKeyError):
            load_key_pair(pub, priv)

    def test_is_configuration_error(self, tmp_path):
        from navigator_secrets.vault import ConfigurationError
        with pytest.raises(ConfigurationError):
            load_public_key(tmp_path / "absent.pub")
