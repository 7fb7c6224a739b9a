"""Unit tests for the STREAM-BE32 primitive."""

import pytest
from nacl.bindings import crypto_aead_xchacha20poly1305_ietf_encrypt

from encsync.core.exceptions import AuthenticationFailed, CipherError, CounterOverflowError
from encsync.security.stream import (
    COUNTER_MAX,
    TAG_SIZE,
    StreamDecryptor,
    StreamEncryptor,
    chunk_nonce,
)

KEY = b"\x11" * 32
NONCE = b"\x22" * 19


def test_chunk_nonce_layout():
    assert chunk_nonce(NONCE, 0, last=False) == NONCE + b"\x00\x00\x00\x00\x00"
    assert chunk_nonce(NONCE, 1, last=True) == NONCE + b"\x00\x00\x00\x01\x01"
    assert chunk_nonce(NONCE, 0x01020304, last=False) == NONCE + b"\x01\x02\x03\x04\x00"
    assert len(chunk_nonce(NONCE, COUNTER_MAX, last=True)) == 24


def test_encryptor_matches_raw_aead():
    enc = StreamEncryptor(KEY, NONCE)
    c0 = enc.encrypt_next(b"a" * 500)
    c1 = enc.encrypt_last(b"tail")

    assert c0 == crypto_aead_xchacha20poly1305_ietf_encrypt(b"a" * 500, None, chunk_nonce(NONCE, 0, False), KEY)
    assert c1 == crypto_aead_xchacha20poly1305_ietf_encrypt(b"tail", None, chunk_nonce(NONCE, 1, True), KEY)
    assert len(c1) == 4 + TAG_SIZE
    assert enc.position == 1
    assert enc.finished


def test_decryptor_roundtrip():
    enc = StreamEncryptor(KEY, NONCE)
    chunks = [enc.encrypt_next(b"x" * 500), enc.encrypt_next(b"y" * 500), enc.encrypt_last(b"z")]

    dec = StreamDecryptor(KEY, NONCE)
    assert dec.decrypt_next(chunks[0]) == b"x" * 500
    assert dec.decrypt_next(chunks[1]) == b"y" * 500
    assert dec.decrypt_last(chunks[2]) == b"z"
    assert dec.finished


def test_last_flag_is_authenticated():
    # a final chunk cannot be accepted as a non-final one and vice versa
    enc = StreamEncryptor(KEY, NONCE)
    last = enc.encrypt_last(b"data")
    with pytest.raises(AuthenticationFailed):
        StreamDecryptor(KEY, NONCE).decrypt_next(last)

    enc = StreamEncryptor(KEY, NONCE)
    nxt = enc.encrypt_next(b"data")
    with pytest.raises(AuthenticationFailed):
        StreamDecryptor(KEY, NONCE).decrypt_last(nxt)


def test_decrypt_rejects_chunk_shorter_than_tag():
    dec = StreamDecryptor(KEY, NONCE)
    with pytest.raises(AuthenticationFailed, match="shorter than"):
        dec.decrypt_last(b"\x00" * (TAG_SIZE - 1))


def test_counter_overflow_refused():
    enc = StreamEncryptor(KEY, NONCE)
    enc.position = COUNTER_MAX
    with pytest.raises(CounterOverflowError):
        enc.encrypt_next(b"x")
    # the final chunk may still use the last counter value
    enc.encrypt_last(b"x")
    assert enc.finished

    dec = StreamDecryptor(KEY, NONCE)
    dec.position = COUNTER_MAX
    with pytest.raises(CounterOverflowError):
        dec.decrypt_next(b"\x00" * 516)


def test_counter_overflow_is_cipher_error():
    assert issubclass(CounterOverflowError, CipherError)


def test_no_use_after_final_chunk():
    enc = StreamEncryptor(KEY, NONCE)
    enc.encrypt_last(b"")
    with pytest.raises(CipherError, match="already finished"):
        enc.encrypt_next(b"more")
    with pytest.raises(CipherError):
        enc.encrypt_last(b"more")


def test_encrypt_binding_failure_wrapped(monkeypatch):
    def boom(*args, **kwargs):
        raise TypeError("bad input")

    monkeypatch.setattr("encsync.security.stream.crypto_aead_xchacha20poly1305_ietf_encrypt", boom)
    enc = StreamEncryptor(KEY, NONCE)
    with pytest.raises(CipherError, match="encryption failed") as excinfo:
        enc.encrypt_next(b"x")
    assert excinfo.value.chunk_index == 0
    assert enc.position == 0


def test_invalid_key_and_nonce_rejected():
    with pytest.raises(ValueError):
        StreamEncryptor(b"\x00" * 16, NONCE)
    with pytest.raises(ValueError):
        StreamDecryptor(KEY, b"\x00" * 24)
