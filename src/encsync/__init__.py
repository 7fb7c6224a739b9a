"""encsync: chunked authenticated file encryption."""

from encsync.core.exceptions import (
    EncsyncError,
    EncsyncIOError,
    CipherError,
    AuthenticationFailed,
)
from encsync.security import encrypt_file, decrypt_file, generate_key, generate_nonce

__version__ = "0.1.0"

__all__ = [
    "EncsyncError",
    "EncsyncIOError",
    "CipherError",
    "AuthenticationFailed",
    "encrypt_file",
    "decrypt_file",
    "generate_key",
    "generate_nonce",
]
