"""
Unit tests for the streaming ChaCha20-Poly1305 transform.

Tests:
- Output matches the one-shot ChaCha20Poly1305 AEAD
- Chunked updates match a single update
- Keystream rewind
- Tag verification and misuse after finalize
"""

import os
import pytest

from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from cc20stream.core_crypto.transform import StreamTransform
from cc20stream.errors import UnderlyingCryptoFailure, AuthenticationFailed


def seal(key: bytes, nonce: bytes, data: bytes, chunk: int = 0) -> bytes:
    """Encrypt with StreamTransform, optionally in chunks."""
    t = StreamTransform(key, nonce)
    out = b""
    pieces = [data[i:i + chunk] for i in range(0, len(data), chunk)] if chunk else [data]
    for piece in pieces:
        ct = t.update(piece)
        t.authenticate(ct)
        out += ct
    return out + t.finalize()


class TestCompatibility:
    """The transform must agree with the one-shot AEAD."""

    def test_matches_aead(self):
        """Output equals ChaCha20Poly1305.encrypt across block and pad boundaries."""
        key, nonce = os.urandom(32), os.urandom(12)
        aead = ChaCha20Poly1305(key)
        for size in (0, 1, 15, 16, 17, 63, 64, 65, 1000):
            data = os.urandom(size)
            assert seal(key, nonce, data) == aead.encrypt(nonce, data, None), size

    def test_chunked_matches_single(self):
        """Feeding odd-sized chunks gives the same output."""
        key, nonce = os.urandom(32), os.urandom(12)
        data = os.urandom(777)
        assert seal(key, nonce, data, chunk=7) == seal(key, nonce, data)

    def test_decrypt_verifies(self):
        """Authenticating received ciphertext and verifying the tag succeeds."""
        key, nonce = os.urandom(32), os.urandom(12)
        data = b"Streaming transform"
        sealed = ChaCha20Poly1305(key).encrypt(nonce, data, None)

        t = StreamTransform(key, nonce)
        ct, tag = sealed[:-16], sealed[-16:]
        t.authenticate(ct)
        assert t.update(ct) == data
        t.verify(tag)
        assert t.finalized


class TestRewind:
    """Tests for keystream repositioning."""

    def test_rewind_replays_keystream(self):
        """After rewind the same keystream bytes are produced again."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        first = t.update(b"\x00" * 200)
        t.rewind(37)
        assert t.position == 37
        assert t.update(b"\x00" * 163) == first[37:]

    def test_rewind_to_block_boundary(self):
        """Rewinding to a 64-byte boundary works without skipping."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        first = t.update(b"\x00" * 130)
        t.rewind(64)
        assert t.update(b"\x00" * 66) == first[64:]

    def test_rewind_forward_rejected(self):
        """The keystream cannot be moved past the current position."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        t.update(b"abc")
        with pytest.raises(UnderlyingCryptoFailure):
            t.rewind(10)
        with pytest.raises(UnderlyingCryptoFailure):
            t.rewind(-1)


class TestMisuse:
    """Tests for invalid parameters and finalize rules."""

    def test_bad_key_length(self):
        """A key of the wrong size is rejected by the primitive."""
        with pytest.raises(UnderlyingCryptoFailure):
            StreamTransform(b"\x00" * 31, b"\x00" * 12)

    def test_bad_nonce_length(self):
        """A nonce of the wrong size is rejected by the primitive."""
        with pytest.raises(UnderlyingCryptoFailure):
            StreamTransform(b"\x00" * 32, b"\x00" * 8)

    def test_finalize_once(self):
        """A second finalize is refused."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        t.finalize()
        with pytest.raises(UnderlyingCryptoFailure):
            t.finalize()
        with pytest.raises(UnderlyingCryptoFailure):
            t.update(b"late")

    def test_wrong_tag(self):
        """A wrong tag raises AuthenticationFailed."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        with pytest.raises(AuthenticationFailed):
            t.verify(b"\x00" * 16)

    def test_short_tag(self):
        """A tag of the wrong length raises AuthenticationFailed."""
        t = StreamTransform(os.urandom(32), os.urandom(12))
        with pytest.raises(AuthenticationFailed):
            t.verify(b"\x00" * 5)
