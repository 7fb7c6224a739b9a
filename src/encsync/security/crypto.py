"""Chunked authenticated file encryption.

Ciphertext layout: a flat run of chunks, each ``ciphertext || 16-byte tag``.
Every chunk is 516 bytes (500 bytes of plaintext) except the last, which holds
the remainder (possibly empty) plus its tag, so it is 16..515 bytes long. There is
no header. Key and nonce travel out-of-band.

A read that returns fewer than 500 plaintext bytes, zero included, ends the
stream. A plaintext whose length is a multiple of 500 therefore ends with an
empty 16-byte final chunk.

Nothing is rolled back on failure. A caller that gets an exception must
treat the destination file as garbage.
"""
import logging
import os
from contextlib import contextmanager
from typing import BinaryIO, Callable, Optional

from encsync.core.exceptions import AuthenticationFailed, EncsyncError, EncsyncIOError, OperationCancelled
from .keys import validate_key, validate_nonce
from .stream import TAG_SIZE, StreamDecryptor, StreamEncryptor

logger = logging.getLogger(__name__)

PLAINTEXT_CHUNK_SIZE = 500
CIPHERTEXT_CHUNK_SIZE = PLAINTEXT_CHUNK_SIZE + TAG_SIZE

ProgressHook = Callable[[int], None]
CancelHook = Callable[[], bool]


def encrypted_size(plaintext_size: int) -> int:
    """Return the ciphertext length produced for ``plaintext_size`` bytes of input."""
    if plaintext_size < 0:
        raise ValueError("plaintext_size must be non-negative")
    full, rest = divmod(plaintext_size, PLAINTEXT_CHUNK_SIZE)
    return full * CIPHERTEXT_CHUNK_SIZE + rest + TAG_SIZE


def _name(handle) -> Optional[str]:
    # file objects opened from a Path keep it as .name; fd-backed ones have an int
    name = getattr(handle, "name", None)
    if isinstance(name, (str, os.PathLike)):
        return os.fspath(name)
    return None


def _read_chunk(reader: BinaryIO, size: int, operation: str, chunk_index: int) -> bytes:
    # keep reading until the chunk is full or EOF; pipes may return short reads
    buf = bytearray()
    while len(buf) < size:
        try:
            data = reader.read(size - len(buf))
        except OSError as exc:
            raise EncsyncIOError(
                f"read failed: {exc}", operation=operation, path=_name(reader), chunk_index=chunk_index
            ) from exc
        if not data:
            break
        buf += data
    return bytes(buf)


def _write_chunk(writer: BinaryIO, data: bytes, operation: str, chunk_index: int) -> int:
    try:
        writer.write(data)
    except OSError as exc:
        raise EncsyncIOError(
            f"write failed: {exc}", operation=operation, path=_name(writer), chunk_index=chunk_index
        ) from exc
    return len(data)


def _check_cancel(cancel: Optional[CancelHook], operation: str, chunk_index: int) -> None:
    if cancel is not None and cancel():
        raise OperationCancelled("operation cancelled", operation=operation, chunk_index=chunk_index)


def encrypt_stream(
    reader: BinaryIO,
    writer: BinaryIO,
    key: bytes,
    nonce: bytes,
    *,
    progress: Optional[ProgressHook] = None,
    cancel: Optional[CancelHook] = None,
) -> int:
    """Encrypt everything ``reader`` yields into ``writer``.

    Returns the number of ciphertext bytes written.
    """
    encryptor = StreamEncryptor(key, nonce)
    written = 0
    while not encryptor.finished:
        index = encryptor.position
        _check_cancel(cancel, "encrypt", index)
        chunk = _read_chunk(reader, PLAINTEXT_CHUNK_SIZE, "encrypt", index)
        if len(chunk) == PLAINTEXT_CHUNK_SIZE:
            ct = encryptor.encrypt_next(chunk)
        else:
            ct = encryptor.encrypt_last(chunk)
        written += _write_chunk(writer, ct, "encrypt", index)
        if progress is not None:
            progress(len(chunk))
    logger.debug("encrypted %d chunks, %d bytes written", encryptor.position + 1, written)
    return written


def decrypt_stream(
    reader: BinaryIO,
    writer: BinaryIO,
    key: bytes,
    nonce: bytes,
    *,
    progress: Optional[ProgressHook] = None,
    cancel: Optional[CancelHook] = None,
) -> int:
    """Verify and decrypt the chunk stream from ``reader`` into ``writer``.

    Each chunk is authenticated before any of its plaintext is written.
    Returns the number of plaintext bytes written.
    """
    decryptor = StreamDecryptor(key, nonce)
    written = 0
    try:
        while not decryptor.finished:
            index = decryptor.position
            _check_cancel(cancel, "decrypt", index)
            chunk = _read_chunk(reader, CIPHERTEXT_CHUNK_SIZE, "decrypt", index)
            if not chunk:
                # EOF on a chunk boundary before the final chunk: the stream was cut short
                raise AuthenticationFailed("ciphertext ends without a final chunk", chunk_index=index)
            if len(chunk) == CIPHERTEXT_CHUNK_SIZE:
                pt = decryptor.decrypt_next(chunk)
            else:
                pt = decryptor.decrypt_last(chunk)
            written += _write_chunk(writer, pt, "decrypt", index)
            if progress is not None:
                progress(len(chunk))
    except AuthenticationFailed as exc:
        raise exc.with_context(operation="decrypt", path=_name(reader)) from exc
    logger.debug("decrypted %d chunks, %d bytes written", decryptor.position + 1, written)
    return written


@contextmanager
def _opened(path, mode: str, operation: str):
    try:
        handle = open(path, mode)
    except OSError as exc:
        raise EncsyncIOError(f"cannot open file: {exc}", operation=operation, path=path) from exc
    with handle:
        yield handle


def _refuse_same_file(source: BinaryIO, dest_path, operation: str) -> None:
    # opening the destination "wb" would truncate the source before it is read
    try:
        dest_stat = os.stat(dest_path)
    except OSError:
        return
    if os.path.samestat(os.fstat(source.fileno()), dest_stat):
        raise EncsyncIOError("source and destination are the same file", operation=operation, path=dest_path)


def _run_file(operation: str, func, source_path, dest_path, key, nonce, progress, cancel) -> int:
    validate_key(key)
    validate_nonce(nonce)
    logger.debug("%s %s -> %s", operation, source_path, dest_path)
    try:
        with _opened(source_path, "rb", operation) as inf:
            _refuse_same_file(inf, dest_path, operation)
            with _opened(dest_path, "wb", operation) as outf:
                return func(inf, outf, key, nonce, progress=progress, cancel=cancel)
    except EncsyncError:
        raise
    except OSError as exc:
        # flush/close of the destination
        raise EncsyncIOError(f"cannot finish writing: {exc}", operation=operation, path=dest_path) from exc


def encrypt_file(
    source_path,
    dest_path,
    key: bytes,
    nonce: bytes,
    *,
    progress: Optional[ProgressHook] = None,
    cancel: Optional[CancelHook] = None,
) -> None:
    """Encrypt ``source_path`` into ``dest_path`` (created or truncated)."""
    _run_file("encrypt", encrypt_stream, source_path, dest_path, key, nonce, progress, cancel)


def decrypt_file(
    source_path,
    dest_path,
    key: bytes,
    nonce: bytes,
    *,
    progress: Optional[ProgressHook] = None,
    cancel: Optional[CancelHook] = None,
) -> None:
    """Decrypt ``source_path`` into ``dest_path``.

    Raises AuthenticationFailed for a wrong key or nonce and for tampered,
    truncated or extended ciphertext. Chunks verified before the failure are
    already in ``dest_path``.
    """
    _run_file("decrypt", decrypt_stream, source_path, dest_path, key, nonce, progress, cancel)
