"""encsync command line.

Thin argparse wrapper around :mod:`encsync.security`. Key and nonce are raw
binary files the user keeps; ``--passphrase`` derives the key with Argon2id
from a prompted passphrase (or ``ENCSYNC_PASSPHRASE``) using the nonce as salt.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from encsync import __version__
from encsync.core.config import Config, default_config_path, get_config, write_config
from encsync.core.exceptions import ConfigError, EncsyncError
from encsync.security import decrypt_file, derive_key, encrypt_file, generate_key, generate_nonce
from encsync.security.kdf import kdf_params_from_dict, kdf_params_to_dict
from encsync.security.keys import validate_key, validate_nonce

from .logging_config import configure_logging, level_from_flags
from .progress import file_progress

logger = logging.getLogger(__name__)

PASSPHRASE_ENV = "ENCSYNC_PASSPHRASE"
ENCRYPTED_SUFFIX = ".enc"


def _read_secret(path: str, what: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise EncsyncError(f"cannot read {what} file: {e}", path=path) from e


def _write_secret(path: str, data: bytes, force: bool) -> None:
    # created 0600 from the start so the secret is never readable by others
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    if not force:
        flags |= os.O_EXCL
    try:
        fd = os.open(path, flags, 0o600)
    except FileExistsError as e:
        raise EncsyncError("refusing to overwrite existing file; pass --force", path=path) from e
    except OSError as e:
        raise EncsyncError(f"cannot write file: {e}", path=path) from e
    try:
        with os.fdopen(fd, "wb") as f:
            if hasattr(os, "fchmod"):
                # an overwritten file keeps its old mode otherwise
                os.fchmod(f.fileno(), 0o600)
            f.write(data)
    except OSError as e:
        raise EncsyncError(f"cannot write file: {e}", path=path) from e


def _load_nonce(args: argparse.Namespace, encrypting: bool = False) -> bytes:
    if getattr(args, "new_nonce", False):
        nonce = generate_nonce()
        _write_secret(args.nonce_file, nonce, force=args.force)
        logger.info("wrote new nonce to %s", args.nonce_file)
        return nonce
    nonce = _read_secret(args.nonce_file, "nonce")
    try:
        validate_nonce(nonce)
    except ValueError as e:
        raise EncsyncError(str(e), path=args.nonce_file) from e
    if encrypting:
        logger.warning(
            "encrypting with existing nonce from %s; never reuse a nonce with the same key (use --new-nonce)",
            args.nonce_file,
        )
    return nonce


def _kdf_params(args: argparse.Namespace) -> dict:
    config_path = default_config_path(args.config_dir)
    config = get_config(config_path)
    if config is None or config.kdf is None:
        return {}
    try:
        return kdf_params_from_dict(config.kdf)
    except ValueError as e:
        raise ConfigError(str(e), path=str(config_path)) from e


def _load_key(args: argparse.Namespace, nonce: bytes) -> bytes:
    if args.passphrase:
        params = _kdf_params(args)
        passphrase = os.getenv(PASSPHRASE_ENV) or getpass.getpass("Passphrase: ")
        if not passphrase:
            raise EncsyncError("empty passphrase")
        return derive_key(passphrase, nonce, **params)
    key = _read_secret(args.key_file, "key")
    try:
        validate_key(key)
    except ValueError as e:
        raise EncsyncError(str(e), path=args.key_file) from e
    return key


def _default_destination(args: argparse.Namespace) -> Path:
    config_path = default_config_path(args.config_dir)
    config = get_config(config_path)
    if config is None:
        raise ConfigError("no destination given and no config found; run 'encsync init'", path=str(config_path))
    return Path(config.destination) / (Path(args.source).name + ENCRYPTED_SUFFIX)


def cmd_init(args: argparse.Namespace) -> int:
    path = default_config_path(args.path)
    if get_config(path) is not None and not args.force:
        raise EncsyncError("already initialized; pass --force to overwrite", path=str(path))
    config = Config(
        sources=list(args.source or []),
        version=__version__,
        destination=args.destination,
        kdf=kdf_params_to_dict(),
    )
    write_config(path, config)
    print(f"Initialized encsync in {path}")
    return 0


def cmd_keygen(args: argparse.Namespace) -> int:
    _write_secret(args.key_out, generate_key(), force=args.force)
    _write_secret(args.nonce_out, generate_nonce(), force=args.force)
    print(f"Wrote key to {args.key_out} and nonce to {args.nonce_out}")
    return 0


def cmd_encrypt(args: argparse.Namespace) -> int:
    dest = Path(args.dest) if args.dest else _default_destination(args)
    dest.parent.mkdir(parents=True, exist_ok=True)
    nonce = _load_nonce(args, encrypting=True)
    key = _load_key(args, nonce)
    with file_progress(args.source, f"Encrypting {Path(args.source).name}", enabled=args.progress) as hook:
        encrypt_file(args.source, dest, key, nonce, progress=hook)
    logger.info("encrypted %s -> %s", args.source, dest)
    print(dest)
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    nonce = _load_nonce(args)
    key = _load_key(args, nonce)
    with file_progress(args.source, f"Decrypting {Path(args.source).name}", enabled=args.progress) as hook:
        decrypt_file(args.source, args.dest, key, nonce, progress=hook)
    logger.info("decrypted %s -> %s", args.source, args.dest)
    print(args.dest)
    return 0


def _add_secret_args(parser: argparse.ArgumentParser, allow_new_nonce: bool) -> None:
    key_group = parser.add_mutually_exclusive_group(required=True)
    key_group.add_argument("--key-file", help="File holding the raw 32-byte key")
    key_group.add_argument(
        "--passphrase",
        action="store_true",
        help=f"Derive the key from a passphrase (prompted, or ${PASSPHRASE_ENV})",
    )
    parser.add_argument("--nonce-file", required=True, help="File holding the raw 19-byte nonce")
    parser.add_argument(
        "--config-dir",
        default=".",
        help="Directory holding encsync.json (destination, passphrase KDF parameters; default: .)",
    )
    if allow_new_nonce:
        parser.add_argument(
            "--new-nonce",
            action="store_true",
            help="Generate a fresh nonce and write it to --nonce-file",
        )
        parser.add_argument("--force", action="store_true", help="Overwrite an existing nonce file")
    parser.add_argument("--no-progress", dest="progress", action="store_false", help="Hide the progress bar")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="encsync",
        description="Encrypt and decrypt files with XChaCha20-Poly1305 in 500-byte authenticated chunks.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Write an encsync.json config")
    p_init.add_argument("--path", default=".", help="Directory to initialize encsync in (default: .)")
    p_init.add_argument("--destination", default=".", help="Where encrypted files go (default: .)")
    p_init.add_argument("--source", action="append", help="Source path to record (repeatable)")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing config")
    p_init.set_defaults(func=cmd_init)

    p_keygen = sub.add_parser("keygen", help="Generate a random key and nonce")
    p_keygen.add_argument("--key-out", required=True, help="Where to write the 32-byte key")
    p_keygen.add_argument("--nonce-out", required=True, help="Where to write the 19-byte nonce")
    p_keygen.add_argument("--force", action="store_true", help="Overwrite existing files")
    p_keygen.set_defaults(func=cmd_keygen)

    p_enc = sub.add_parser("encrypt", help="Encrypt a file")
    p_enc.add_argument("source", help="Plaintext file")
    p_enc.add_argument("dest", nargs="?", help="Ciphertext file (default: <destination>/<name>.enc)")
    _add_secret_args(p_enc, allow_new_nonce=True)
    p_enc.set_defaults(func=cmd_encrypt)

    p_dec = sub.add_parser("decrypt", help="Decrypt a file")
    p_dec.add_argument("source", help="Ciphertext file")
    p_dec.add_argument("dest", help="Plaintext output file")
    _add_secret_args(p_dec, allow_new_nonce=False)
    p_dec.set_defaults(func=cmd_decrypt)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(level_from_flags(args.verbose, args.quiet))
    try:
        return args.func(args)
    except EncsyncError as e:
        logger.debug("command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
