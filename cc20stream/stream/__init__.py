# Stream Module
"""
Stream layer implementations including:
- Session metadata (backing stream, key, nonce, direction)
- CipherSink write-driven encrypt/decrypt state machine
- SinkAdapter exposing a sink as a write-only io.RawIOBase
- CipherSource read-driven counterpart

Ownership of the backing stream is settled on close according to
WrapConfig.keep_alive.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import of public names from the stream submodules."""
    from . import metadata, sink, adapter, source
    for module in (metadata, sink, adapter, source):
        if hasattr(module, name):
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    'Direction',
    'SessionMetadata',
    'build_metadata',
    'CipherSink',
    'SinkState',
    'SinkAdapter',
    'WrapConfig',
    'wrap',
    'wrap_sink',
    'CipherSource',
]
