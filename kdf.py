import hmac
from enum import Enum

from argon2.low_level import ARGON2_VERSION, Type, hash_secret_raw

# version of the underlying primitive, written into every encoded hash
VERSION = ARGON2_VERSION


class Mode(str, Enum):
    """
    Supported Argon2 variants.

    Argon2d is left out on purpose: its data dependent memory access
    leaks through side channels, which rules it out for passwords.
    """

    ARGON2ID = "argon2id"
    ARGON2I = "argon2i"

    def __str__(self):
        return self.value


_TYPES = {
    Mode.ARGON2ID: Type.ID,
    Mode.ARGON2I: Type.I,
}


def derive(password: bytes,
           salt: bytes,
           iterations: int,
           memory_cost: int,
           parallelism: int,
           key_length: int,
           mode: Mode = Mode.ARGON2ID) -> bytes:
    """
    Run the Argon2 primitive and return the raw derived key.

    :param password: the secret to stretch
    :param salt: random nonce, the primitive requires at least 8 bytes
    :param iterations: number of passes over the memory
    :param memory_cost: memory size in kibibytes, at least 8 per lane
    :param parallelism: number of lanes
    :param key_length: length of the output in bytes, at least 4
    :param mode: variant of the algorithm
    :return: derived key of key_length bytes
    """
    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=iterations,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=key_length,
        type=_TYPES[mode],
        version=VERSION,
    )


def constant_time_equal(a: bytes, b: bytes) -> bool:
    # lengths are public (they are part of the encoded hash)
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)
