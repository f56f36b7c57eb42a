"""
Session Metadata Module

Binds a backing stream to a key, a nonce and a direction. Metadata is a
plain value: it references the backing stream but never owns it. Ownership
is decided at close time by whoever wraps the sink (see adapter.WrapConfig).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..core_crypto.keys import Key, Nonce, BytesLike, generate, generate_key, generate_nonce
from ..errors import InvalidBackingStream


class Direction(Enum):
    """Direction of a cipher session. Fixed once the session begins."""

    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


@dataclass(frozen=True)
class SessionMetadata:
    """
    Everything needed to (re)build a cipher sink.

    Returned again by CipherSink.close() so the caller can recover the
    backing stream, key and nonce, e.g. to decrypt with the same key.
    """
    backing: Any
    key: Key
    nonce: Nonce
    direction: Direction

    def __repr__(self) -> str:
        return (
            f"SessionMetadata(backing={self.backing!r}, key=<redacted>, "
            f"nonce={self.nonce.hex()}, direction={self.direction.value})"
        )

    def with_backing(self, backing: Any) -> 'SessionMetadata':
        """Return a copy bound to another backing stream."""
        check_backing_stream(backing, "write")
        return SessionMetadata(backing, self.key, self.nonce, self.direction)

    def reversed(self, backing: Any) -> 'SessionMetadata':
        """Return a copy for the opposite direction over another stream."""
        check_backing_stream(backing, "write")
        other = (Direction.DECRYPT if self.direction is Direction.ENCRYPT
                 else Direction.ENCRYPT)
        return SessionMetadata(backing, self.key, self.nonce, other)


def check_backing_stream(backing: Any, method: str = "write") -> None:
    """
    Check that ``backing`` is an open stream exposing ``method``.

    Raises:
        InvalidBackingStream: If the stream is None, closed or lacks ``method``
    """
    if backing is None:
        raise InvalidBackingStream("Backing stream is None")
    if not callable(getattr(backing, method, None)):
        raise InvalidBackingStream(
            f"Backing stream {type(backing).__name__} has no {method}() method"
        )
    if getattr(backing, "closed", False):
        raise InvalidBackingStream("Backing stream is closed")


def build_metadata(backing: Any,
                   key: Optional[BytesLike] = None,
                   nonce: Optional[BytesLike] = None,
                   direction: Union[Direction, str] = Direction.ENCRYPT,
                   method: str = "write") -> SessionMetadata:
    """
    Build session metadata, generating missing key material.

    When both key and nonce are omitted they are generated together from a
    single random read. The backing stream is only inspected, never read,
    written or repositioned.

    Args:
        backing: Backing stream (anything with a write() method)
        key: 32-byte key, generated if None
        nonce: 12-byte nonce, generated if None
        direction: Direction or its value ("encrypt" / "decrypt")
        method: Stream method the backing stream must provide

    Returns:
        SessionMetadata

    Raises:
        InvalidBackingStream: If the backing stream is unusable
        ValueError: If key/nonce have the wrong size or direction is unknown
        PanicError: If the random source is unavailable
    """
    check_backing_stream(backing, method)
    direction = Direction(direction)

    if key is None and nonce is None:
        key, nonce = generate()
    elif key is None:
        key = generate_key()
    elif nonce is None:
        nonce = generate_nonce()

    return SessionMetadata(
        backing=backing,
        key=Key(key),
        nonce=Nonce(nonce),
        direction=direction,
    )
