"""
Key and Nonce Module

Fixed-length key material for the ChaCha20-Poly1305 stream cipher:
- Key:   256-bit (32 bytes) secret
- Nonce:  96-bit (12 bytes), unique per (key, stream) when encrypting

Generation uses the operating system CSPRNG through ``secrets``. If the
random source is unavailable a PanicError is raised immediately.

Nonce reuse with the same key destroys confidentiality and authenticity of
every stream encrypted under that pair. It is not detected here; callers
must never reuse a nonce for encryption.

Key material text format (for keeping a key between runs):
    base64(key) ":" base64(nonce)
"""

import base64
import binascii
import secrets
from typing import Tuple, Union

from ..config import KEY_SIZE, NONCE_SIZE, KEY_MATERIAL_SEPARATOR
from ..errors import PanicError


BytesLike = Union[bytes, bytearray, memoryview]


def _random_bytes(size: int) -> bytes:
    """Read ``size`` bytes from the OS random source or raise PanicError."""
    try:
        return secrets.token_bytes(size)
    except (OSError, NotImplementedError) as e:
        raise PanicError("Secure random source unavailable") from e


class _FixedBytes(bytes):
    """Immutable byte string with an exact required length."""

    SIZE = 0
    LABEL = "value"

    def __new__(cls, data: BytesLike):
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise ValueError(
                f"{cls.LABEL} must be {cls.SIZE} bytes, got {len(data)}"
            )
        return super().__new__(cls, data)

    @classmethod
    def generate(cls):
        """Generate a new random value."""
        return cls(_random_bytes(cls.SIZE))

    @classmethod
    def from_base64(cls, text: Union[str, bytes]):
        """
        Decode a value from standard base64.

        Raises:
            ValueError: If the text is not valid base64 or has the wrong length
        """
        if isinstance(text, str):
            text = text.encode("ascii")
        try:
            raw = base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 {cls.LABEL}: {e}") from e
        return cls(raw)

    def to_base64(self) -> str:
        """Encode as standard base64."""
        return base64.b64encode(self).decode("ascii")

    def __str__(self) -> str:
        return self.hex()


class Key(_FixedBytes):
    """
    32-byte ChaCha20-Poly1305 key.

    The repr never shows the key bytes. Python ``bytes`` are immutable, so
    the memory holding a Key cannot be reliably zeroed on release.
    """

    SIZE = KEY_SIZE
    LABEL = "Key"

    def __repr__(self) -> str:
        return "Key(<redacted>)"


class Nonce(_FixedBytes):
    """12-byte ChaCha20-Poly1305 nonce."""

    SIZE = NONCE_SIZE
    LABEL = "Nonce"

    def __repr__(self) -> str:
        return f"Nonce({self.hex()})"


def generate() -> Tuple[Key, Nonce]:
    """
    Generate a random key and nonce pair.

    Both halves come from a single read of the random source.

    Returns:
        Tuple of (key, nonce)
    """
    raw = _random_bytes(KEY_SIZE + NONCE_SIZE)
    return Key(raw[:KEY_SIZE]), Nonce(raw[KEY_SIZE:])


def generate_key() -> Key:
    """Generate a random 32-byte key."""
    return Key.generate()


def generate_nonce() -> Nonce:
    """Generate a random 12-byte nonce."""
    return Nonce.generate()


def export_key_material(key: BytesLike, nonce: BytesLike) -> str:
    """
    Serialize a key/nonce pair to a single line of text.

    Args:
        key: 32-byte key
        nonce: 12-byte nonce

    Returns:
        "<base64 key>:<base64 nonce>"
    """
    return Key(key).to_base64() + KEY_MATERIAL_SEPARATOR + Nonce(nonce).to_base64()


def import_key_material(text: str) -> Tuple[Key, Nonce]:
    """
    Parse text produced by export_key_material.

    Raises:
        ValueError: If the text is malformed
    """
    parts = text.strip().split(KEY_MATERIAL_SEPARATOR)
    if len(parts) != 2:
        raise ValueError("Key material must be '<key>:<nonce>'")
    return Key.from_base64(parts[0]), Nonce.from_base64(parts[1])
