"""Security helpers: key material and streaming encryption for encsync.

This package provides:
- secure random key and nonce generation
- XChaCha20-Poly1305 STREAM encryption/decryption of files in 500-byte chunks
- optional Argon2id key derivation from a passphrase
"""

from .keys import KeyMaterialGenerator, generate_key, generate_nonce, KEY_SIZE, NONCE_SIZE
from .crypto import (
    encrypt_file,
    decrypt_file,
    encrypt_stream,
    decrypt_stream,
    encrypted_size,
)
from .kdf import derive_key

__all__ = [
    "KeyMaterialGenerator",
    "generate_key",
    "generate_nonce",
    "KEY_SIZE",
    "NONCE_SIZE",
    "encrypt_file",
    "decrypt_file",
    "encrypt_stream",
    "decrypt_stream",
    "encrypted_size",
    "derive_key",
]
