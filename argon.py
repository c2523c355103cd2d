"""
Argon2 password hashing with PHC encoded output.

    >>> encoded = hash("correct_horse_battery_staple")
    >>> verify("correct_horse_battery_staple", encoded)
    True

Every call is self contained: a fresh salt and key buffer per call and no
module state besides constants, so the functions can be used from many
threads at once. The KDF blocks for as long as the parameters demand.
"""
import logging
import os
from typing import Mapping, Optional, Union

from kdf import VERSION, Mode, constant_time_equal, derive
from phc import (
    ArgonError,
    EncodedRecord,
    IncompatibleVersionError,
    InvalidFormatError,
    Parameters,
    UnsupportedModeError,
    decode,
    encode,
    resolve_mode,
)

__all__ = [
    "ArgonError",
    "EncodedRecord",
    "IncompatibleVersionError",
    "InvalidFormatError",
    "Mode",
    "Parameters",
    "UnsupportedModeError",
    "VERSION",
    "decode",
    "default_parameters",
    "encode",
    "hash",
    "hash_with_params",
    "needs_rehash",
    "parameters_from_env",
    "verify",
]

logger = logging.getLogger(__name__)

# 64 MiB, a practical work factor for interactive logins
DEFAULT_MEMORY_COST = 64 * 1024
DEFAULT_ITERATIONS = 1
# upper bound only, the host may have fewer cores
DEFAULT_PARALLELISM = 4
DEFAULT_SALT_LENGTH = 16
DEFAULT_KEY_LENGTH = 32
DEFAULT_MODE = Mode.ARGON2ID

ENV_PREFIX = "ARGON_"

Password = Union[str, bytes]


def default_parameters() -> Parameters:
    """
    Parameters for interactive logins.

    Parallelism follows the number of cores but is capped at 4, so hashes
    created on large machines stay cheap to verify on small ones.
    """
    parallelism = min(os.cpu_count() or 1, DEFAULT_PARALLELISM)
    return Parameters(
        memory_cost=DEFAULT_MEMORY_COST,
        iterations=DEFAULT_ITERATIONS,
        parallelism=max(parallelism, 1),
        salt_length=DEFAULT_SALT_LENGTH,
        key_length=DEFAULT_KEY_LENGTH,
        mode=DEFAULT_MODE,
    )


def parameters_from_env(environ: Optional[Mapping[str, str]] = None) -> Parameters:
    """
    Overlay ARGON_* environment variables on the default parameters.

    Recognised names are ARGON_MEMORY_COST, ARGON_ITERATIONS,
    ARGON_PARALLELISM, ARGON_SALT_LENGTH, ARGON_KEY_LENGTH and ARGON_MODE.
    Values that are not integers are ignored. The mode is taken as is, an
    unknown one makes hashing fail with UnsupportedModeError.
    """
    if environ is None:
        environ = os.environ
    defaults = default_parameters()

    def pick_int(name: str, default: int) -> int:
        value = _parse_int(environ.get(ENV_PREFIX + name))
        return default if value is None else value

    return Parameters(
        memory_cost=pick_int("MEMORY_COST", defaults.memory_cost),
        iterations=pick_int("ITERATIONS", defaults.iterations),
        parallelism=pick_int("PARALLELISM", defaults.parallelism),
        salt_length=pick_int("SALT_LENGTH", defaults.salt_length),
        key_length=pick_int("KEY_LENGTH", defaults.key_length),
        mode=environ.get(ENV_PREFIX + "MODE", defaults.mode),
    )


def hash(password: Password, parameters: Optional[Parameters] = None) -> str:
    if parameters is None:
        parameters = default_parameters()
    return hash_with_params(password, parameters)


def hash_with_params(password: Password, parameters: Parameters) -> str:
    """
    Hash a password and return the PHC encoded result.

    Caller supplied parameters are trusted and not bounded here; values the
    primitive cannot work with raise argon2.exceptions.HashingError.

    :raises UnsupportedModeError: parameters.mode is not a supported variant
    :raises OSError: the system random source is unavailable
    """
    salt = os.urandom(parameters.salt_length)
    mode = resolve_mode(parameters.mode)

    logger.debug("hashing with %s m=%d t=%d p=%d",
                 mode.value, parameters.memory_cost, parameters.iterations, parameters.parallelism)
    key = derive(_to_bytes(password),
                 salt,
                 iterations=parameters.iterations,
                 memory_cost=parameters.memory_cost,
                 parallelism=parameters.parallelism,
                 key_length=parameters.key_length,
                 mode=mode)
    return encode(parameters, salt, key)


def verify(password: Password, encoded: str) -> bool:
    """
    Check a password against an encoded hash.

    A mismatch returns False. A hash that cannot be decoded raises the
    matching error from decode and never counts as a match.
    """
    record = decode(encoded)
    parameters = record.parameters
    candidate = derive(_to_bytes(password),
                       record.salt,
                       iterations=parameters.iterations,
                       memory_cost=parameters.memory_cost,
                       parallelism=parameters.parallelism,
                       key_length=parameters.key_length,
                       mode=resolve_mode(parameters.mode))
    return constant_time_equal(candidate, record.key)


def needs_rehash(encoded: str, parameters: Optional[Parameters] = None) -> bool:
    """
    Tell whether a stored hash should be replaced on the next login.

    True when the hash comes from another primitive version or was made
    with parameters other than the target ones (the defaults when omitted).
    Malformed hashes still raise.
    """
    if parameters is None:
        parameters = default_parameters()
    try:
        current = decode(encoded).parameters
    except IncompatibleVersionError:
        return True

    return (current.mode != resolve_mode(parameters.mode)
            or current.memory_cost != parameters.memory_cost
            or current.iterations != parameters.iterations
            or current.parallelism != parameters.parallelism
            or current.salt_length != parameters.salt_length
            or current.key_length != parameters.key_length)


def _to_bytes(password: Password) -> bytes:
    if isinstance(password, bytes):
        return password
    if isinstance(password, str):
        return password.encode("utf-8")
    raise TypeError(f"password must be str or bytes, not {type(password).__name__}")


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
