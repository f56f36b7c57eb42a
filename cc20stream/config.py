"""
Configuration constants for cc20stream.

All sizes are in bytes and follow RFC 8439 (ChaCha20-Poly1305):
- 256-bit key
- 96-bit nonce
- 128-bit Poly1305 tag
- 64-byte ChaCha20 block
"""

KEY_SIZE = 32               # 256-bit key
NONCE_SIZE = 12             # 96-bit IETF nonce
TAG_SIZE = 16               # 128-bit Poly1305 tag
BLOCK_SIZE = 64             # ChaCha20 keystream block
POLY1305_KEY_SIZE = 32      # one-time key taken from block 0

# Poly1305 processes 16-byte blocks; ciphertext is zero padded to this boundary
MAC_PAD_SIZE = 16

# Block counter of the first payload block (block 0 is the Poly1305 key)
INITIAL_COUNTER = 1

# Read size used by CipherSource when the caller asks for "everything"
DEFAULT_READ_SIZE = 64 * 1024  # 64 KB

# Separator used by the key material text format ("<key b64>:<nonce b64>")
KEY_MATERIAL_SEPARATOR = ":"
