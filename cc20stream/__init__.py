"""
cc20stream
==========
Transparent streaming ChaCha20-Poly1305 (RFC 8439) over any binary stream.

Write plaintext into an encrypting sink and the backing stream receives
ciphertext followed by a 16-byte tag; write that back into a decrypting
sink and the backing stream receives the plaintext, with the tag verified
on close.

    import io, cc20stream

    backing = io.BytesIO()
    out = cc20stream.wrap(backing, config=cc20stream.WrapConfig(keep_alive=True))
    with io.TextIOWrapper(io.BufferedWriter(out)) as text:
        print("Hello world?", end="", file=text)
    key, nonce = out.metadata.key, out.metadata.nonce

Dependencies: cryptography >= 41.0
"""

from .config import KEY_SIZE, NONCE_SIZE, TAG_SIZE
from .core_crypto.keys import (
    Key, Nonce, generate, generate_key, generate_nonce,
    export_key_material, import_key_material,
)
from .errors import (
    StreamCipherError, PanicError, InvalidBackingStream, NullOutput,
    UnderlyingCryptoFailure, AuthenticationFailed, IOFailure, SinkClosed,
)
from .stream.metadata import Direction, SessionMetadata, build_metadata
from .stream.sink import CipherSink, SinkState
from .stream.adapter import SinkAdapter, WrapConfig, wrap, wrap_sink
from .stream.source import CipherSource

import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "Key",
    "Nonce",
    "generate",
    "generate_key",
    "generate_nonce",
    "export_key_material",
    "import_key_material",
    "StreamCipherError",
    "PanicError",
    "InvalidBackingStream",
    "NullOutput",
    "UnderlyingCryptoFailure",
    "AuthenticationFailed",
    "IOFailure",
    "SinkClosed",
    "Direction",
    "SessionMetadata",
    "build_metadata",
    "CipherSink",
    "SinkState",
    "SinkAdapter",
    "WrapConfig",
    "wrap",
    "wrap_sink",
    "CipherSource",
]
