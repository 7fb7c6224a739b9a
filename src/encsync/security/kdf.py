from typing import Dict

from argon2.low_level import Type, hash_secret_raw

from .keys import KEY_SIZE

KDF_ALGO = "argon2id"
DEFAULT_TIME_COST = 3
DEFAULT_MEMORY_COST = 65536
DEFAULT_PARALLELISM = 1


def derive_key(
    passphrase: bytes,
    salt: bytes,
    time_cost: int = DEFAULT_TIME_COST,
    memory_cost: int = DEFAULT_MEMORY_COST,
    parallelism: int = DEFAULT_PARALLELISM,
) -> bytes:
    """
    Derive a codec key from a passphrase using Argon2id.
    Returns KEY_SIZE raw bytes. The command line passes the per-file nonce as salt.
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    return hash_secret_raw(
        secret=passphrase,
        salt=bytes(salt),
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=KEY_SIZE,
        type=Type.ID,
    )


def kdf_params_to_dict(
    time_cost: int = DEFAULT_TIME_COST,
    memory_cost: int = DEFAULT_MEMORY_COST,
    parallelism: int = DEFAULT_PARALLELISM,
) -> Dict:
    return {
        "algo": KDF_ALGO,
        "time": time_cost,
        "memory": memory_cost,
        "parallelism": parallelism,
    }


def kdf_params_from_dict(params: Dict) -> Dict[str, int]:
    """Turn a dict written by kdf_params_to_dict back into derive_key keyword arguments.

    Raises ValueError for an unknown algorithm or missing/non-integer fields.
    """
    if not isinstance(params, dict):
        raise ValueError("kdf parameters must be a mapping")
    if params.get("algo") != KDF_ALGO:
        raise ValueError(f"unsupported kdf algorithm: {params.get('algo')!r}")
    try:
        kwargs = {
            "time_cost": params["time"],
            "memory_cost": params["memory"],
            "parallelism": params["parallelism"],
        }
    except KeyError as e:
        raise ValueError(f"missing kdf parameter: {e}") from e
    for name, value in kwargs.items():
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ValueError(f"kdf parameter {name} must be a positive integer")
    return kwargs
