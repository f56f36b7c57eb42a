"""
Cipher Sink Module

The stateful core of cc20stream: a write-driven ChaCha20-Poly1305 transform
in front of a backing stream.

    Encrypt: plaintext in  -> ciphertext out, tag appended on close
    Decrypt: ciphertext+tag in -> plaintext out, tag verified on close

Lifecycle:
    UNINITIALIZED -> ACTIVE -> FINALIZED

Only ACTIVE accepts writes. close() finalizes exactly once; later calls are
no-ops returning the same metadata. The sink never closes its backing
stream, that decision belongs to the adapter or the caller.

Partial writes:
    The cipher state only advances for bytes the backing stream confirmed.
    If the backing stream accepts fewer bytes than offered, write() returns
    the smaller count and the keystream is rewound so the caller can resend
    the remainder. A non-blocking stream that would block makes write()
    return None, and a failing one raises IOFailure; in both cases the
    keystream stays at the last confirmed offset.

Streaming consequences (caller visible):
    - Ciphertext or plaintext already forwarded is never rolled back when a
      later operation fails.
    - On decrypt, plaintext is forwarded before the tag is checked at close.
      Treat it as untrusted until close() returns without AuthenticationFailed.

A sink is not thread-safe; one thread must drive it in stream order.
"""

import logging
from enum import Enum
from typing import Any, Optional

from ..config import TAG_SIZE
from ..core_crypto.keys import BytesLike
from ..core_crypto.transform import StreamTransform
from ..errors import (
    NullOutput, IOFailure, SinkClosed, AuthenticationFailed,
)
from .metadata import Direction, SessionMetadata, build_metadata, check_backing_stream


logger = logging.getLogger(__name__)


class SinkState(Enum):
    """Lifecycle state of a CipherSink."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    FINALIZED = "finalized"


def _backing_write(backing: Any, data: bytes) -> Optional[int]:
    """
    Write to the backing stream, returning the confirmed byte count.

    None means a non-blocking stream would have blocked and wrote nothing.
    """
    try:
        n = backing.write(data)
    except (OSError, ValueError) as e:
        raise IOFailure(f"Backing stream write failed: {e}") from e
    if n is None:
        return None
    if n < 0 or n > len(data):
        raise IOFailure(f"Backing stream reported invalid write count {n}")
    return n


def _backing_flush(backing: Any) -> None:
    flush = getattr(backing, "flush", None)
    if flush is None:
        return
    try:
        flush()
    except (OSError, ValueError) as e:
        raise IOFailure(f"Backing stream flush failed: {e}") from e


class CipherSink:
    """
    ChaCha20-Poly1305 sink over a backing stream.

    Example:
        >>> backing = io.BytesIO()
        >>> sink = CipherSink.encrypt(backing)
        >>> sink.write(b"Hello world?")
        12
        >>> meta = sink.close()
        >>> len(backing.getvalue())
        28
    """

    def __init__(self, metadata: SessionMetadata):
        """
        Initialize the sink. Prefer CipherSink.create().

        Args:
            metadata: Session metadata from build_metadata()

        Raises:
            NullOutput: If metadata is None
            InvalidBackingStream: If the backing stream is unusable
            UnderlyingCryptoFailure: If the cipher rejects the key or nonce
        """
        self._state = SinkState.UNINITIALIZED
        if metadata is None:
            raise NullOutput("Cannot create a sink from None metadata")
        check_backing_stream(metadata.backing, "write")

        self._metadata = metadata
        self._backing = metadata.backing
        self._direction = Direction(metadata.direction)
        self._transform = StreamTransform(metadata.key, metadata.nonce)

        # Decrypt only: trailing bytes that may turn out to be the tag
        self._tail = bytearray()
        self._consumed = 0
        self._state = SinkState.ACTIVE

        logger.debug("Created %s sink over %s",
                     self._direction.value, type(self._backing).__name__)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, metadata: SessionMetadata) -> 'CipherSink':
        """Create an active sink from session metadata."""
        return cls(metadata)

    @classmethod
    def encrypt(cls, backing: Any, key: Optional[BytesLike] = None,
                nonce: Optional[BytesLike] = None) -> 'CipherSink':
        """Create an encrypting sink, generating missing key material."""
        return cls(build_metadata(backing, key, nonce, Direction.ENCRYPT))

    @classmethod
    def decrypt(cls, backing: Any, key: BytesLike,
                nonce: BytesLike) -> 'CipherSink':
        """Create a decrypting sink. Key and nonce must match the encryptor's."""
        if key is None or nonce is None:
            raise NullOutput("Decryption requires both key and nonce")
        return cls(build_metadata(backing, key, nonce, Direction.DECRYPT))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def metadata(self) -> SessionMetadata:
        return self._metadata

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def backing(self) -> Any:
        """The backing stream (borrowed, never closed by the sink)."""
        return self._backing

    inner = backing

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is SinkState.FINALIZED

    @property
    def bytes_processed(self) -> int:
        """Input bytes consumed by write() so far."""
        return self._consumed

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self, data: BytesLike) -> Optional[int]:
        """
        Feed data through the cipher into the backing stream.

        Args:
            data: Plaintext (encrypt) or ciphertext (decrypt)

        Returns:
            Number of input bytes consumed. Less than len(data) when the
            backing stream accepted only part of the output. None when a
            non-blocking backing stream would block and nothing was consumed.

        Raises:
            SinkClosed: If the sink is finalized
            IOFailure: If the backing stream fails. The keystream is left
                where it was, so the same data can be written again.
            UnderlyingCryptoFailure: If the transform fails
        """
        if self._state is not SinkState.ACTIVE:
            raise SinkClosed(f"Cannot write to a {self._state.value} sink")

        data = bytes(data)
        if not data:
            return 0

        if self._direction is Direction.ENCRYPT:
            n = self._write_encrypt(data)
        else:
            n = self._write_decrypt(data)
        if n is not None:
            self._consumed += n
        return n

    def _send(self, start: int, output: bytes) -> Optional[int]:
        """Write transformed bytes, rewinding the keystream to ``start`` on failure."""
        try:
            n = _backing_write(self._backing, output)
        except IOFailure:
            self._transform.rewind(start)
            raise
        if n is None:
            self._transform.rewind(start)
        return n

    def _write_encrypt(self, data: bytes) -> Optional[int]:
        start = self._transform.position
        ciphertext = self._transform.update(data)
        n = self._send(start, ciphertext)
        if n is None:
            return None
        self._transform.authenticate(ciphertext[:n])
        if n < len(data):
            logger.debug("Short write: %d of %d bytes accepted", n, len(data))
            self._transform.rewind(start + n)
        return n

    def _write_decrypt(self, data: bytes) -> Optional[int]:
        held = len(self._tail)
        combined = bytes(self._tail) + data
        if len(combined) <= TAG_SIZE:
            self._tail[:] = combined
            return len(data)

        # Everything but the last TAG_SIZE bytes is known to be ciphertext
        release = combined[:-TAG_SIZE]
        start = self._transform.position
        plaintext = self._transform.update(release)
        n = self._send(start, plaintext)
        if n is None:
            return None
        self._transform.authenticate(release[:n])

        if n == len(release):
            self._tail[:] = combined[-TAG_SIZE:]
            return len(data)

        logger.debug("Short write: %d of %d plaintext bytes accepted", n, len(release))
        self._transform.rewind(start + n)
        consumed = max(0, n - held)
        self._tail[:] = combined[n:held + consumed]
        return consumed

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def _write_all(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            n = _backing_write(self._backing, bytes(view))
            if not n:
                raise IOFailure("Backing stream accepted no bytes while writing tag")
            view = view[n:]

    def close(self) -> SessionMetadata:
        """
        Finalize the cipher and return the session metadata.

        Encrypt: writes the 16-byte tag and flushes the backing stream.
        Decrypt: verifies the held-back tag and flushes the backing stream.

        Calling close() on a finalized sink does nothing and returns the same
        metadata.

        Raises:
            AuthenticationFailed: On decrypt, if the tag is missing or wrong
            IOFailure: If writing the tag or flushing fails
            UnderlyingCryptoFailure: If the transform fails
        """
        if self._state is SinkState.FINALIZED:
            return self._metadata
        self._state = SinkState.FINALIZED

        if self._direction is Direction.ENCRYPT:
            tag = self._transform.finalize()
            self._write_all(tag)
        else:
            try:
                self._verify_tail()
            finally:
                self.prune()

        _backing_flush(self._backing)
        logger.debug("Finalized %s sink after %d bytes",
                     self._direction.value, self._consumed)
        return self._metadata

    def _verify_tail(self) -> None:
        if len(self._tail) < TAG_SIZE:
            logger.warning("Decrypt stream truncated: %d tag bytes", len(self._tail))
            raise AuthenticationFailed(
                f"Ciphertext truncated - missing authentication tag "
                f"({len(self._tail)} of {TAG_SIZE} bytes)"
            )
        try:
            self._transform.verify(bytes(self._tail))
        except AuthenticationFailed:
            logger.warning("Authentication tag mismatch on decrypt sink")
            raise

    def prune(self) -> None:
        """Zero the internal tail buffer."""
        for i in range(len(self._tail)):
            self._tail[i] = 0
        self._tail.clear()

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> 'CipherSink':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"CipherSink({self._direction.value}, {self._state.value}, "
            f"backing={type(self._backing).__name__})"
        )
