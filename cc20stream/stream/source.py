"""
Cipher Source Module

Read-side counterpart of CipherSink: an ``io.RawIOBase`` that pulls bytes
from a readable backing stream and returns them transformed.

    Encrypt: reads plaintext, returns ciphertext followed by the tag at EOF
    Decrypt: reads ciphertext+tag, returns plaintext, verifies at EOF

On decrypt the last 16 bytes of the backing stream are held back as the tag
candidate. Plaintext is returned before the tag is verified; a tampered
stream raises AuthenticationFailed from the read that reaches EOF.
"""

import io
import logging
from typing import Any, Optional

from ..config import TAG_SIZE, DEFAULT_READ_SIZE
from ..core_crypto.keys import BytesLike
from ..core_crypto.transform import StreamTransform
from ..errors import NullOutput, IOFailure, SinkClosed, AuthenticationFailed
from .adapter import WrapConfig, DEFAULT_WRAP_CONFIG, close_backing
from .metadata import Direction, SessionMetadata, build_metadata, check_backing_stream


logger = logging.getLogger(__name__)


class CipherSource(io.RawIOBase):
    """
    Read-only ChaCha20-Poly1305 stream over a readable backing stream.

    Example:
        >>> src = CipherSource.decrypt(io.BytesIO(ciphertext), key, nonce)
        >>> plaintext = src.read()
    """

    def __init__(self, metadata: SessionMetadata,
                 config: WrapConfig = DEFAULT_WRAP_CONFIG):
        """
        Initialize the source.

        Args:
            metadata: Session metadata whose backing stream supports read()
            config: Ownership settings for the backing stream

        Raises:
            NullOutput: If metadata or config is None
            InvalidBackingStream: If the backing stream cannot be read
            UnderlyingCryptoFailure: If the cipher rejects the key or nonce
        """
        super().__init__()
        if metadata is None:
            raise NullOutput("Cannot create a source from None metadata")
        if config is None:
            raise NullOutput("WrapConfig is required")
        check_backing_stream(metadata.backing, "read")

        self._metadata = metadata
        self._config = config
        self._direction = Direction(metadata.direction)
        self._transform = StreamTransform(metadata.key, metadata.nonce)
        self._pending = bytearray()
        self._tail = bytearray()
        self._eof = False

    @classmethod
    def encrypt(cls, backing: Any, key: Optional[BytesLike] = None,
                nonce: Optional[BytesLike] = None,
                config: WrapConfig = DEFAULT_WRAP_CONFIG) -> 'CipherSource':
        """Create an encrypting source, generating missing key material."""
        metadata = build_metadata(backing, key, nonce, Direction.ENCRYPT, method="read")
        return cls(metadata, config)

    @classmethod
    def decrypt(cls, backing: Any, key: BytesLike, nonce: BytesLike,
                config: WrapConfig = DEFAULT_WRAP_CONFIG) -> 'CipherSource':
        """Create a decrypting source."""
        if key is None or nonce is None:
            raise NullOutput("Decryption requires both key and nonce")
        metadata = build_metadata(backing, key, nonce, Direction.DECRYPT, method="read")
        return cls(metadata, config)

    @property
    def metadata(self) -> SessionMetadata:
        return self._metadata

    @property
    def direction(self) -> Direction:
        return self._direction

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def readinto(self, b) -> Optional[int]:
        """
        Read transformed bytes into ``b``.

        Returns:
            Number of bytes read, 0 at EOF, or None if the backing stream
            is non-blocking and has no data available

        Raises:
            AuthenticationFailed: On decrypt, when EOF reveals a bad tag
            IOFailure: If the backing stream read fails
        """
        if self.closed:
            raise SinkClosed("Cannot read from a closed source")
        view = memoryview(b).cast("B")
        if len(view) == 0:
            return 0

        while not self._pending and not self._eof:
            if self._fill(max(len(view), TAG_SIZE)) is None:
                return None

        n = min(len(view), len(self._pending))
        view[:n] = self._pending[:n]
        del self._pending[:n]
        return n

    def _fill(self, size: int) -> Optional[int]:
        try:
            chunk = self._metadata.backing.read(size)
        except (OSError, ValueError) as e:
            raise IOFailure(f"Backing stream read failed: {e}") from e
        if chunk is None:
            return None

        if not chunk:
            self._finish()
            return 0

        if self._direction is Direction.ENCRYPT:
            ciphertext = self._transform.update(chunk)
            self._transform.authenticate(ciphertext)
            self._pending += ciphertext
        else:
            combined = bytes(self._tail) + bytes(chunk)
            release = combined[:-TAG_SIZE] if len(combined) > TAG_SIZE else b""
            self._tail[:] = combined[len(release):]
            self._transform.authenticate(release)
            self._pending += self._transform.update(release)
        return len(chunk)

    def _finish(self) -> None:
        self._eof = True
        if self._direction is Direction.ENCRYPT:
            self._pending += self._transform.finalize()
            return
        tag = bytes(self._tail)
        self._tail.clear()
        if len(tag) < TAG_SIZE:
            logger.warning("Decrypt source truncated: %d tag bytes", len(tag))
            raise AuthenticationFailed(
                f"Ciphertext truncated - missing authentication tag "
                f"({len(tag)} of {TAG_SIZE} bytes)"
            )
        self._transform.verify(tag)

    def read_all(self, chunk_size: int = DEFAULT_READ_SIZE) -> bytes:
        """Read until EOF using ``chunk_size`` reads."""
        out = bytearray()
        while True:
            data = self.read(chunk_size)
            if not data:
                break
            out += data
        return bytes(out)

    def write(self, b: BytesLike) -> int:
        raise io.UnsupportedOperation("cipher source streams are read-only")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise io.UnsupportedOperation("cipher source streams are not seekable")

    def tell(self) -> int:
        raise io.UnsupportedOperation("cipher source streams are not seekable")

    def close(self) -> None:
        """Close the source and the backing stream unless keep_alive."""
        if self.closed:
            return
        metadata = getattr(self, "_metadata", None)
        try:
            if metadata is not None:
                close_backing(metadata.backing, self._config)
        finally:
            super().close()

    def __repr__(self) -> str:
        return f"CipherSource({self._direction.value}, eof={self._eof})"
