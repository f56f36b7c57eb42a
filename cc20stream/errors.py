"""
Error types raised by cc20stream.

Every failure is raised to the immediate caller; nothing is retried or
swallowed. Errors that wrap a library or OS exception keep it as
``__cause__``.

Taxonomy:
    PanicError               - secure random source unavailable
    InvalidBackingStream     - backing stream missing, closed or not a stream
    NullOutput               - required value (e.g. metadata) is None
    UnderlyingCryptoFailure  - the cryptography package rejected an operation
    AuthenticationFailed     - Poly1305 tag did not verify
    IOFailure                - backing stream read/write/flush/close failed
    SinkClosed               - operation on an already finalized sink
"""


class StreamCipherError(Exception):
    """Base class for all cc20stream errors."""
    pass


class PanicError(StreamCipherError):
    """
    Unrecoverable internal fault.

    Raised when the operating system random source cannot produce bytes.
    The operation should be aborted, not retried.
    """
    pass


class InvalidBackingStream(StreamCipherError, ValueError):
    """Raised when a backing stream is None, closed or lacks the needed methods."""
    pass


class NullOutput(StreamCipherError, ValueError):
    """Raised when a required value is None."""
    pass


class UnderlyingCryptoFailure(StreamCipherError):
    """Raised when the cipher primitive rejects parameters or fails internally."""
    pass


class AuthenticationFailed(StreamCipherError):
    """
    Raised when tag verification fails on the decrypt path.

    The ciphertext is tampered, truncated or was produced with another
    key/nonce. Plaintext already forwarded to the backing stream must be
    treated as untrusted.
    """
    pass


class IOFailure(StreamCipherError, OSError):
    """Raised when the backing stream fails a read, write, flush or close."""
    pass


class SinkClosed(StreamCipherError, ValueError):
    """Raised when writing to a sink that has already been finalized."""
    pass
