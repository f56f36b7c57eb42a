"""
Streaming ChaCha20-Poly1305 Transform

Incremental form of the RFC 8439 AEAD construction, built from the
``cryptography`` primitives:
- ChaCha20 keystream (``Cipher(algorithms.ChaCha20, mode=None)``)
- Poly1305 one-time authenticator

Construction:
    block 0 of the keystream   -> Poly1305 one-time key (first 32 bytes)
    blocks 1.. of the keystream -> XOR with the payload
    tag = Poly1305(ciphertext || pad16 || le64(0) || le64(len(ciphertext)))

No associated data is used, so the output of an encrypting transform is
byte-identical to ``ChaCha20Poly1305(key).encrypt(nonce, data, None)``.

The cryptography library takes a 16-byte ChaCha20 nonce made of a 4-byte
little-endian block counter followed by the 12-byte IETF nonce.
"""

import logging
import struct

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.poly1305 import Poly1305

from ..config import (
    KEY_SIZE, NONCE_SIZE, TAG_SIZE, BLOCK_SIZE,
    POLY1305_KEY_SIZE, MAC_PAD_SIZE, INITIAL_COUNTER,
)
from ..errors import UnderlyingCryptoFailure, AuthenticationFailed


logger = logging.getLogger(__name__)

# ChaCha20 block counter is 32 bits wide
MAX_COUNTER = 0xFFFFFFFF


def _keystream_context(key: bytes, nonce: bytes, counter: int):
    """Create a ChaCha20 context starting at block ``counter``."""
    if counter > MAX_COUNTER:
        raise UnderlyingCryptoFailure("ChaCha20 block counter exhausted")
    full_nonce = struct.pack('<I', counter) + bytes(nonce)
    try:
        cipher = Cipher(
            algorithms.ChaCha20(bytes(key), full_nonce),
            mode=None,
            backend=default_backend()
        )
        return cipher.encryptor()
    except Exception as e:
        raise UnderlyingCryptoFailure(f"ChaCha20 initialization failed: {e}") from e


class StreamTransform:
    """
    Rolling ChaCha20 keystream plus Poly1305 state for one stream.

    The keystream and the authenticator advance independently: callers XOR
    data with ``update`` and feed the ciphertext they have committed to with
    ``authenticate``. ``rewind`` moves the keystream back to the committed
    offset after a partial write.

    Example:
        >>> t = StreamTransform(key, nonce)
        >>> ct = t.update(b"Hello")
        >>> t.authenticate(ct)
        >>> tag = t.finalize()
    """

    def __init__(self, key: bytes, nonce: bytes):
        """
        Initialize the transform.

        Args:
            key: 32-byte key
            nonce: 12-byte nonce

        Raises:
            UnderlyingCryptoFailure: If key or nonce are rejected
        """
        if len(key) != KEY_SIZE:
            raise UnderlyingCryptoFailure(
                f"Key must be {KEY_SIZE} bytes, got {len(key)}"
            )
        if len(nonce) != NONCE_SIZE:
            raise UnderlyingCryptoFailure(
                f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
            )
        self._key = bytes(key)
        self._nonce = bytes(nonce)

        block0 = _keystream_context(self._key, self._nonce, 0)
        poly_key = block0.update(b"\x00" * POLY1305_KEY_SIZE)
        try:
            self._mac = Poly1305(poly_key)
        except Exception as e:
            raise UnderlyingCryptoFailure(f"Poly1305 initialization failed: {e}") from e

        self._keystream = _keystream_context(self._key, self._nonce, INITIAL_COUNTER)
        self._position = 0          # keystream offset within the payload
        self._authenticated = 0     # ciphertext bytes fed to Poly1305
        self._finalized = False

    @property
    def position(self) -> int:
        """Keystream offset (payload bytes transformed so far)."""
        return self._position

    @property
    def authenticated(self) -> int:
        """Number of ciphertext bytes fed to the authenticator."""
        return self._authenticated

    @property
    def finalized(self) -> bool:
        return self._finalized

    def update(self, data: bytes) -> bytes:
        """
        XOR data with the next keystream bytes.

        Encryption and decryption are the same operation.
        """
        self._check_active()
        try:
            out = self._keystream.update(bytes(data))
        except Exception as e:
            raise UnderlyingCryptoFailure(f"ChaCha20 update failed: {e}") from e
        self._position += len(data)
        return out

    def authenticate(self, ciphertext: bytes) -> None:
        """Feed ciphertext, in stream order, to the Poly1305 state."""
        self._check_active()
        if not ciphertext:
            return
        try:
            self._mac.update(bytes(ciphertext))
        except Exception as e:
            raise UnderlyingCryptoFailure(f"Poly1305 update failed: {e}") from e
        self._authenticated += len(ciphertext)

    def rewind(self, position: int) -> None:
        """
        Reposition the keystream at payload offset ``position``.

        Args:
            position: Byte offset, not beyond the current position
        """
        self._check_active()
        if position < 0 or position > self._position:
            raise UnderlyingCryptoFailure(
                f"Cannot rewind keystream from {self._position} to {position}"
            )
        if position == self._position:
            return
        block, skip = divmod(position, BLOCK_SIZE)
        self._keystream = _keystream_context(
            self._key, self._nonce, INITIAL_COUNTER + block
        )
        if skip:
            self._keystream.update(b"\x00" * skip)
        logger.debug("Keystream rewound from %d to %d", self._position, position)
        self._position = position

    def _mac_trailer(self) -> bytes:
        """Padding and length block closing the authenticated data."""
        pad = (-self._authenticated) % MAC_PAD_SIZE
        return b"\x00" * pad + struct.pack('<QQ', 0, self._authenticated)

    def finalize(self) -> bytes:
        """
        Produce the 16-byte authentication tag.

        May be called once; the transform is unusable afterwards.
        """
        self._check_active()
        self._finalized = True
        try:
            self._mac.update(self._mac_trailer())
            return self._mac.finalize()
        except Exception as e:
            raise UnderlyingCryptoFailure(f"Poly1305 finalize failed: {e}") from e

    def verify(self, tag: bytes) -> None:
        """
        Verify a received tag in constant time.

        Raises:
            AuthenticationFailed: If the tag does not match
        """
        self._check_active()
        self._finalized = True
        if len(tag) != TAG_SIZE:
            raise AuthenticationFailed(
                f"Authentication tag must be {TAG_SIZE} bytes, got {len(tag)}"
            )
        try:
            self._mac.update(self._mac_trailer())
            self._mac.verify(bytes(tag))
        except InvalidSignature as e:
            raise AuthenticationFailed(
                "Authentication failed - ciphertext may be corrupted or tampered"
            ) from e
        except Exception as e:
            raise UnderlyingCryptoFailure(f"Poly1305 verify failed: {e}") from e

    def _check_active(self) -> None:
        if self._finalized:
            raise UnderlyingCryptoFailure("Transform already finalized")
