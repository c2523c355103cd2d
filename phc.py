"""
PHC string format for Argon2 hashes.

    $<mode>$v=<version>$m=<memory>,t=<iterations>,p=<parallelism>$<salt>$<key>

Salt and key are base64 with the standard alphabet and without padding.
Everything parsed here may come from tampered storage, so the decoder
checks every segment before anything reaches the primitive.
"""
import base64
import binascii
import re
from dataclasses import dataclass, replace
from typing import Optional, Union

from kdf import VERSION, Mode

DELIMITER = "$"

_VERSION_RE = re.compile(r"v=([0-9]{1,10})")
_PARAMS_RE = re.compile(r"m=([0-9]{1,10}),t=([0-9]{1,10}),p=([0-9]{1,3})")

# widths of the fields in the reference format
_MAX_UINT32 = 2 ** 32 - 1
_MAX_UINT8 = 2 ** 8 - 1


class ArgonError(Exception):
    pass


class InvalidFormatError(ArgonError):
    """The encoded hash is not structured as a PHC string."""


class IncompatibleVersionError(ArgonError):
    """The encoded hash was produced by another version of Argon2."""


class UnsupportedModeError(ArgonError):
    """The Argon2 variant is not one of the supported modes."""


@dataclass(frozen=True)
class Parameters:
    # memory size in kibibytes
    memory_cost: int
    # number of passes over the memory
    iterations: int
    # number of lanes, fits in one byte
    parallelism: int
    salt_length: int
    key_length: int
    # None and "" stand for configurations written before the mode existed
    mode: Optional[Union[Mode, str]] = Mode.ARGON2ID

    def validate(self):
        if self.memory_cost < 1 or self.iterations < 1 or self.parallelism < 1:
            raise InvalidFormatError("memory, iterations and parallelism must be at least 1")


@dataclass(frozen=True)
class EncodedRecord:
    parameters: Parameters
    salt: bytes
    key: bytes


def resolve_mode(mode: Optional[Union[Mode, str]]) -> Mode:
    if not mode:
        return Mode.ARGON2ID
    try:
        return Mode(mode)
    except ValueError:
        raise UnsupportedModeError(f"unsupported argon2 mode: {mode!r}") from None


def encode(parameters: Parameters, salt: bytes, key: bytes) -> str:
    mode = resolve_mode(parameters.mode)
    return DELIMITER + DELIMITER.join((
        mode.value,
        f"v={VERSION}",
        f"m={parameters.memory_cost:d},t={parameters.iterations:d},p={parameters.parallelism:d}",
        _b64encode(salt),
        _b64encode(key),
    ))


def decode(encoded: str) -> EncodedRecord:
    """
    Parse an encoded hash.

    :param encoded: PHC string as produced by encode
    :raises InvalidFormatError: wrong number of segments, malformed or out of range numbers, empty salt or key
    :raises UnsupportedModeError: mode tag other than argon2id or argon2i
    :raises IncompatibleVersionError: well formed, but another primitive version
    :raises binascii.Error: salt or key is not valid unpadded base64
    :return: the parameters together with the raw salt and key
    """
    if not isinstance(encoded, str):
        raise InvalidFormatError("encoded hash must be a string")

    segments = encoded.split(DELIMITER)
    # the leading delimiter yields an empty first segment
    if len(segments) != 6 or segments[0] != "":
        raise InvalidFormatError("hash is not in the correct format")
    _, mode_tag, version_field, params_field, salt_b64, key_b64 = segments

    if mode_tag not in (Mode.ARGON2ID.value, Mode.ARGON2I.value):
        raise UnsupportedModeError(f"unsupported argon2 mode: {mode_tag!r}")
    mode = Mode(mode_tag)

    match = _VERSION_RE.fullmatch(version_field)
    if match is None:
        raise InvalidFormatError("malformed version field")
    if int(match.group(1)) != VERSION:
        raise IncompatibleVersionError(f"incompatible version of argon2: {match.group(1)}")

    match = _PARAMS_RE.fullmatch(params_field)
    if match is None:
        raise InvalidFormatError("malformed parameter field")
    memory_cost, iterations, parallelism = (int(g) for g in match.groups())
    if memory_cost > _MAX_UINT32 or iterations > _MAX_UINT32 or parallelism > _MAX_UINT8:
        raise InvalidFormatError("parameter out of range")

    parameters = Parameters(
        memory_cost=memory_cost,
        iterations=iterations,
        parallelism=parallelism,
        salt_length=0,
        key_length=0,
        mode=mode,
    )
    parameters.validate()

    # lengths come from the decoded data, not from any field
    salt = _b64decode(salt_b64)
    key = _b64decode(key_b64)
    if not salt or not key:
        raise InvalidFormatError("salt and key must not be empty")
    parameters = replace(parameters, salt_length=len(salt), key_length=len(key))
    return EncodedRecord(parameters=parameters, salt=salt, key=key)


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(segment: str) -> bytes:
    if "=" in segment:
        raise binascii.Error("padding is not allowed in encoded hashes")
    try:
        raw = segment.encode("ascii")
    except UnicodeEncodeError:
        raise binascii.Error("non-ascii character in base64 segment") from None
    return base64.b64decode(raw + b"=" * (-len(raw) % 4), validate=True)
