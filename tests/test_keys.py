"""
Unit tests for the Key/Nonce module.

Tests:
- Key and nonce sizes and validation
- Secure generation (single RNG read, distinct values)
- PanicError when the random source fails
- Base64 and key material round trip
"""

import pytest
from unittest.mock import patch

from cc20stream.core_crypto.keys import (
    Key, Nonce, generate, generate_key, generate_nonce,
    export_key_material, import_key_material,
)
from cc20stream.config import KEY_SIZE, NONCE_SIZE
from cc20stream.errors import PanicError


class TestKeyTypes:
    """Tests for the fixed-length value types."""

    def test_sizes(self):
        """Key is 32 bytes and nonce is 12 bytes."""
        assert KEY_SIZE == 32
        assert NONCE_SIZE == 12
        assert len(Key(b"\x01" * 32)) == 32
        assert len(Nonce(b"\x02" * 12)) == 12

    def test_wrong_key_length_rejected(self):
        """Keys of the wrong length should be rejected."""
        with pytest.raises(ValueError):
            Key(b"\x00" * 31)
        with pytest.raises(ValueError):
            Key(b"\x00" * 33)

    def test_wrong_nonce_length_rejected(self):
        """Nonces of the wrong length should be rejected."""
        with pytest.raises(ValueError):
            Nonce(b"\x00" * 16)

    def test_accepts_bytearray(self):
        """Mutable buffers are copied into an immutable value."""
        raw = bytearray(b"\x07" * 32)
        key = Key(raw)
        raw[0] = 0
        assert key[0] == 7

    def test_key_repr_redacted(self):
        """Key bytes never appear in repr()."""
        key = Key(b"\xab" * 32)
        assert "ab" not in repr(key)
        assert "redacted" in repr(key)

    def test_str_is_hex(self):
        """str() of a nonce is its hex encoding."""
        nonce = Nonce(bytes(range(12)))
        assert str(nonce) == bytes(range(12)).hex()


class TestGeneration:
    """Tests for secure key/nonce generation."""

    def test_generate_pair(self):
        """generate() returns a Key and a Nonce."""
        key, nonce = generate()
        assert isinstance(key, Key)
        assert isinstance(nonce, Nonce)

    def test_generate_single_rng_call(self):
        """Key and nonce come from one read of the random source."""
        with patch("cc20stream.core_crypto.keys.secrets.token_bytes",
                   return_value=bytes(range(44))) as token_bytes:
            key, nonce = generate()
        token_bytes.assert_called_once_with(KEY_SIZE + NONCE_SIZE)
        assert key == bytes(range(32))
        assert nonce == bytes(range(32, 44))

    def test_generated_values_differ(self):
        """Repeated generation yields different material."""
        assert generate_key() != generate_key()
        assert generate_nonce() != generate_nonce()
        assert generate() != generate()

    def test_rng_failure_panics(self):
        """An unavailable random source raises PanicError."""
        with patch("cc20stream.core_crypto.keys.secrets.token_bytes",
                   side_effect=OSError("no entropy")):
            with pytest.raises(PanicError):
                generate()
            with pytest.raises(PanicError):
                Key.generate()


class TestKeyMaterial:
    """Tests for base64 encoding and the key material text format."""

    def test_base64_roundtrip(self):
        """to_base64 / from_base64 should round trip."""
        key = generate_key()
        assert Key.from_base64(key.to_base64()) == key

    def test_invalid_base64_rejected(self):
        """Malformed base64 raises ValueError."""
        with pytest.raises(ValueError):
            Key.from_base64("not*base64!")

    def test_short_base64_rejected(self):
        """Decoded material of the wrong length raises ValueError."""
        with pytest.raises(ValueError):
            Nonce.from_base64(Key(b"\x00" * 32).to_base64())

    def test_export_import(self):
        """Exported key material should import back unchanged."""
        key, nonce = generate()
        text = export_key_material(key, nonce)
        assert ":" in text
        assert import_key_material(text + "\n") == (key, nonce)

    def test_import_malformed(self):
        """Text without exactly one separator is rejected."""
        with pytest.raises(ValueError):
            import_key_material("abc")
        with pytest.raises(ValueError):
            import_key_material("a:b:c")
