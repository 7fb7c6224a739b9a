"""STREAM construction over XChaCha20-Poly1305 with a 32-bit big-endian counter.

Each chunk is sealed under its own 24-byte XChaCha20 nonce:

- 19 bytes: per-file nonce
- 4 bytes: chunk counter, big-endian, starting at 0
- 1 byte: last-chunk flag (0x00 for every chunk but the final one, 0x01 for it)

The counter advances after each non-final chunk; the final chunk reuses the
current value with the flag set. Because the flag is bound into the nonce,
dropping, reordering or appending chunks fails authentication. Associated data
is empty and there is no header.
"""
import logging
import struct

from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_ABYTES,
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from encsync.core.exceptions import AuthenticationFailed, CipherError, CounterOverflowError
from .keys import validate_key, validate_nonce

logger = logging.getLogger(__name__)

TAG_SIZE = crypto_aead_xchacha20poly1305_ietf_ABYTES
COUNTER_MAX = 0xFFFFFFFF

_FLAG_NEXT = 0
_FLAG_LAST = 1


def chunk_nonce(nonce: bytes, position: int, last: bool) -> bytes:
    """Build the 24-byte XChaCha20 nonce for the chunk at ``position``."""
    return bytes(nonce) + struct.pack(">IB", position, _FLAG_LAST if last else _FLAG_NEXT)


class _Stream:
    """Shared state of one STREAM pass: key, 19-byte nonce and chunk counter.

    ``position`` is the counter the next chunk will use; ``finished`` turns true
    once the final chunk has been processed, after which the instance refuses work.
    """

    def __init__(self, key: bytes, nonce: bytes):
        validate_key(key)
        validate_nonce(nonce)
        self._key = bytes(key)
        self._nonce = bytes(nonce)
        self.position = 0
        self.finished = False

    def _require_open(self) -> None:
        if self.finished:
            raise CipherError("stream already finished", chunk_index=self.position)

    def _require_room(self) -> None:
        if self.position == COUNTER_MAX:
            raise CounterOverflowError("chunk counter exhausted", chunk_index=self.position)


class StreamEncryptor(_Stream):
    """Seals chunks in order; ``encrypt_last`` must be called exactly once at the end."""

    def _seal(self, chunk: bytes, last: bool) -> bytes:
        nonce = chunk_nonce(self._nonce, self.position, last)
        try:
            return crypto_aead_xchacha20poly1305_ietf_encrypt(bytes(chunk), None, nonce, self._key)
        except (CryptoError, TypeError, ValueError) as exc:
            raise CipherError(f"encryption failed: {exc}", chunk_index=self.position) from exc

    def encrypt_next(self, chunk: bytes) -> bytes:
        self._require_open()
        self._require_room()
        ct = self._seal(chunk, last=False)
        self.position += 1
        return ct

    def encrypt_last(self, chunk: bytes) -> bytes:
        self._require_open()
        ct = self._seal(chunk, last=True)
        self.finished = True
        return ct


class StreamDecryptor(_Stream):
    """Opens chunks in order. Never returns plaintext for a chunk whose tag does not verify."""

    def _open(self, chunk: bytes, last: bool) -> bytes:
        if len(chunk) < TAG_SIZE:
            raise AuthenticationFailed("chunk shorter than authentication tag", chunk_index=self.position)
        nonce = chunk_nonce(self._nonce, self.position, last)
        try:
            return crypto_aead_xchacha20poly1305_ietf_decrypt(bytes(chunk), None, nonce, self._key)
        except CryptoError as exc:
            logger.warning("authentication failed at chunk %d", self.position)
            raise AuthenticationFailed("authentication failed", chunk_index=self.position) from exc

    def decrypt_next(self, chunk: bytes) -> bytes:
        self._require_open()
        self._require_room()
        pt = self._open(chunk, last=False)
        self.position += 1
        return pt

    def decrypt_last(self, chunk: bytes) -> bytes:
        self._require_open()
        pt = self._open(chunk, last=True)
        self.finished = True
        return pt
