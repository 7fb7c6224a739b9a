"""Key and nonce generation for the streaming codec.

The secure random source is passed in rather than looked up globally so tests
can swap in a deterministic one. The default is the OS CSPRNG.
"""
import os
from typing import Callable

KEY_SIZE = 32
NONCE_SIZE = 19

RandomSource = Callable[[int], bytes]


class KeyMaterialGenerator:
    """Draws keys and nonces from a secure random source."""

    def __init__(self, random_source: RandomSource = os.urandom):
        self._random = random_source

    def _draw(self, size: int) -> bytes:
        data = self._random(size)
        if len(data) != size:
            # a short read from the entropy source is a process fault, not a user error
            raise RuntimeError(f"random source returned {len(data)} bytes, expected {size}")
        return bytes(data)

    def generate_key(self) -> bytes:
        return self._draw(KEY_SIZE)

    def generate_nonce(self) -> bytes:
        return self._draw(NONCE_SIZE)


_default_generator = KeyMaterialGenerator()


def generate_key() -> bytes:
    """Return a fresh 32-byte key from the OS secure random source."""
    return _default_generator.generate_key()


def generate_nonce() -> bytes:
    """Return a fresh 19-byte nonce from the OS secure random source."""
    return _default_generator.generate_nonce()


def validate_key(key: bytes) -> None:
    """Raise ValueError unless ``key`` is a 32-byte bytes-like value."""
    if not isinstance(key, (bytes, bytearray)):
        raise ValueError("key must be bytes")
    if len(key) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key)}")


def validate_nonce(nonce: bytes) -> None:
    """Raise ValueError unless ``nonce`` is a 19-byte bytes-like value."""
    if not isinstance(nonce, (bytes, bytearray)):
        raise ValueError("nonce must be bytes")
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
