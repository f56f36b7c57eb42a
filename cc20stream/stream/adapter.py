"""
Stream Adapter Module

Exposes a CipherSink through the standard ``io.RawIOBase`` interface so it
can be handed to anything that writes to a binary stream, or wrapped in
``io.BufferedWriter`` / ``io.TextIOWrapper`` for print() and friends.

Capabilities:
- write: forwarded to CipherSink.write (partial writes are reported)
- read:  never supported, the sink is driven by writes in both directions
- seek:  never supported, the cipher state is strictly sequential
- close: finalizes the sink, then closes the backing stream unless
         WrapConfig.keep_alive is set

Example:
    >>> backing = io.BytesIO()
    >>> out = wrap(backing, config=WrapConfig(keep_alive=True))
    >>> out.write(b"Hello world?")
    12
    >>> out.close()
    >>> meta = out.metadata      # key and nonce for decryption
"""

import io
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..core_crypto.keys import BytesLike
from ..errors import NullOutput, IOFailure, StreamCipherError
from .metadata import Direction, SessionMetadata, build_metadata
from .sink import CipherSink


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrapConfig:
    """
    Ownership settings for a wrapped stream.

    Attributes:
        keep_alive: If True, closing the wrapper leaves the backing stream
            open for the caller. Default False: the backing stream is closed.
    """
    keep_alive: bool = False


DEFAULT_WRAP_CONFIG = WrapConfig()


def close_backing(backing: Any, config: WrapConfig) -> None:
    """
    Close ``backing`` unless ``config.keep_alive`` is set.

    Raises:
        IOFailure: If closing the backing stream fails
    """
    if config.keep_alive:
        return
    close = getattr(backing, "close", None)
    if close is None:
        return
    try:
        close()
    except (OSError, ValueError) as e:
        raise IOFailure(f"Closing backing stream failed: {e}") from e


class SinkAdapter(io.RawIOBase):
    """
    Write-only binary stream over a CipherSink.

    Not thread-safe; the wrapped sink must be driven by one thread.
    """

    def __init__(self, sink: CipherSink, config: WrapConfig = DEFAULT_WRAP_CONFIG):
        """
        Wrap an active sink.

        Args:
            sink: Sink to wrap (the adapter takes ownership of it)
            config: Ownership settings for the backing stream

        Raises:
            NullOutput: If sink or config is None
        """
        super().__init__()
        if sink is None:
            raise NullOutput("Cannot wrap a None sink")
        if config is None:
            raise NullOutput("WrapConfig is required")
        self._sink = sink
        self._config = config

    @property
    def sink(self) -> CipherSink:
        return self._sink

    @property
    def config(self) -> WrapConfig:
        return self._config

    @property
    def metadata(self) -> SessionMetadata:
        """Session metadata (backing stream, key, nonce, direction)."""
        return self._sink.metadata

    @property
    def direction(self) -> Direction:
        return self._sink.direction

    # -- capabilities ---------------------------------------------------

    def readable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    # -- write ----------------------------------------------------------

    def write(self, b: BytesLike) -> Optional[int]:
        """
        Write bytes through the cipher.

        Returns:
            Number of bytes consumed, possibly fewer than len(b), or None
            if the backing stream is non-blocking and not ready

        Raises:
            SinkClosed: If the adapter or sink has been closed
        """
        return self._sink.write(b)

    def flush(self) -> None:
        """Flush the backing stream while the sink is still active."""
        super().flush()
        sink = getattr(self, "_sink", None)
        if sink is None or sink.closed:
            return
        flush = getattr(sink.backing, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except (OSError, ValueError) as e:
            raise IOFailure(f"Backing stream flush failed: {e}") from e

    # -- unsupported ----------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        raise io.UnsupportedOperation("cipher sink streams are write-only")

    def readall(self) -> bytes:
        raise io.UnsupportedOperation("cipher sink streams are write-only")

    def readinto(self, b) -> int:
        raise io.UnsupportedOperation("cipher sink streams are write-only")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise io.UnsupportedOperation("cipher sink streams are not seekable")

    def tell(self) -> int:
        raise io.UnsupportedOperation("cipher sink streams are not seekable")

    def truncate(self, size: Optional[int] = None) -> int:
        raise io.UnsupportedOperation("cipher sink streams are not seekable")

    # -- close ----------------------------------------------------------

    def close(self) -> None:
        """
        Finalize the sink and settle ownership of the backing stream.

        The backing stream is closed (unless keep_alive) even when
        finalization fails; the finalization error is then re-raised.
        Closing twice is a no-op.
        """
        if self.closed:
            return
        if getattr(self, "_sink", None) is None:
            # __init__ failed before a sink was attached
            super().close()
            return
        error = None
        try:
            self._sink.close()
        except StreamCipherError as e:
            error = e

        try:
            close_backing(self._sink.backing, self._config)
        except IOFailure:
            if error is None:
                raise
            logger.warning("Backing stream close failed after finalize error")
        finally:
            super().close()

        if error is not None:
            raise error

    def finish(self) -> SessionMetadata:
        """Close the adapter and return the session metadata."""
        self.close()
        return self._sink.metadata

    def __repr__(self) -> str:
        return f"SinkAdapter({self._sink!r}, keep_alive={self._config.keep_alive})"


def wrap_sink(sink: CipherSink, config: WrapConfig = DEFAULT_WRAP_CONFIG) -> SinkAdapter:
    """Wrap an existing sink in a SinkAdapter."""
    return SinkAdapter(sink, config)


def wrap(backing: Any,
         key: Optional[BytesLike] = None,
         nonce: Optional[BytesLike] = None,
         direction: Union[Direction, str] = Direction.ENCRYPT,
         config: WrapConfig = DEFAULT_WRAP_CONFIG) -> SinkAdapter:
    """
    Build metadata, a sink and an adapter over ``backing`` in one call.

    Missing key material is generated; read it back from ``.metadata``.

    Args:
        backing: Backing stream to write into
        key: 32-byte key, generated if None
        nonce: 12-byte nonce, generated if None
        direction: Direction.ENCRYPT or Direction.DECRYPT
        config: Ownership settings for the backing stream

    Returns:
        SinkAdapter
    """
    metadata = build_metadata(backing, key, nonce, direction)
    return SinkAdapter(CipherSink.create(metadata), config)
