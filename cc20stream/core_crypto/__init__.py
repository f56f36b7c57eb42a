# Core Cryptography Module
"""
Cipher building blocks:
- Key / Nonce value types and secure generation
- Streaming ChaCha20-Poly1305 transform over the cryptography package
"""
