import binascii
import unittest

from kdf import Mode
from phc import (
    IncompatibleVersionError,
    InvalidFormatError,
    Parameters,
    UnsupportedModeError,
    decode,
    encode,
    resolve_mode,
)

SALT_B64 = "dGVzdHNhbHQ"  # b"testsalt"
KEY_B64 = "dGVzdGhhc2g"  # b"testhash"


def make_hash(mode="argon2id", version="v=19", params="m=65536,t=1,p=4", salt=SALT_B64, key=KEY_B64):
    return "$".join(("", mode, version, params, salt, key))


class EncodeTest(unittest.TestCase):
    def test_exact_layout(self):
        params = Parameters(memory_cost=65536, iterations=1, parallelism=4, salt_length=16, key_length=32)

        encoded = encode(params, bytes(16), bytes(32))

        assert encoded == "$argon2id$v=19$m=65536,t=1,p=4$" + "A" * 22 + "$" + "A" * 43

    def test_no_padding(self):
        params = Parameters(memory_cost=8, iterations=1, parallelism=1, salt_length=8, key_length=4)

        encoded = encode(params, b"testsalt", b"\xff\xfe\xfd\xfc")

        assert "=" not in encoded
        assert encoded.endswith("$" + SALT_B64 + "$//79/A")

    def test_argon2i_tag(self):
        params = Parameters(memory_cost=32768, iterations=2, parallelism=2, salt_length=8, key_length=8,
                            mode=Mode.ARGON2I)

        assert encode(params, b"testsalt", b"testhash") == make_hash(mode="argon2i", params="m=32768,t=2,p=2")

    def test_mode_as_plain_string(self):
        params = Parameters(memory_cost=8, iterations=1, parallelism=1, salt_length=8, key_length=8,
                            mode="argon2i")

        assert encode(params, b"testsalt", b"testhash").startswith("$argon2i$v=19$")

    def test_legacy_empty_mode(self):
        for mode in (None, ""):
            params = Parameters(memory_cost=8, iterations=1, parallelism=1, salt_length=8, key_length=8,
                                mode=mode)

            assert encode(params, b"testsalt", b"testhash").startswith("$argon2id$")

    def test_unsupported_mode(self):
        params = Parameters(memory_cost=8, iterations=1, parallelism=1, salt_length=8, key_length=8,
                            mode="argon2d")

        with self.assertRaises(UnsupportedModeError):
            encode(params, b"testsalt", b"testhash")


class DecodeTest(unittest.TestCase):
    def test_round_trip(self):
        cases = [
            (Parameters(65536, 1, 4, 16, 32, Mode.ARGON2ID), bytes(range(16)), bytes(range(100, 132))),
            (Parameters(8, 3, 1, 8, 4, Mode.ARGON2I), b"testsalt", b"\x00\x01\x02\x03"),
            (Parameters(2 ** 32 - 1, 2 ** 32 - 1, 255, 17, 65, Mode.ARGON2ID), b"\xff" * 17, b"\x80" * 65),
        ]
        for params, salt, key in cases:
            record = decode(encode(params, salt, key))

            assert record.parameters == params
            assert record.salt == salt
            assert record.key == key

    def test_fields(self):
        record = decode(make_hash(params="m=32768,t=2,p=3"))

        assert record.parameters.mode is Mode.ARGON2ID
        assert record.parameters.memory_cost == 32768
        assert record.parameters.iterations == 2
        assert record.parameters.parallelism == 3
        assert record.salt == b"testsalt"
        assert record.key == b"testhash"

    def test_lengths_from_data(self):
        record = decode(make_hash(key="AAAAAAAAAAAAAAAAAAAAAA"))

        assert record.parameters.salt_length == 8
        assert record.parameters.key_length == 16

    def test_segment_count(self):
        for encoded in ["",
                        "invalid_hash_string",
                        "$argon2id$v=19$m=65536,t=1,p=4$" + SALT_B64,
                        make_hash() + "$extra",
                        "$$$$$$$"]:
            with self.assertRaises(InvalidFormatError):
                decode(encoded)

    def test_leading_segment_must_be_empty(self):
        with self.assertRaises(InvalidFormatError):
            decode("x" + make_hash())

    def test_not_a_string(self):
        for value in (None, 42, make_hash().encode()):
            with self.assertRaises(InvalidFormatError):
                decode(value)

    def test_incompatible_version(self):
        for version in ("v=18", "v=16", "v=20"):
            with self.assertRaises(IncompatibleVersionError):
                decode(make_hash(version=version))

    def test_malformed_version(self):
        for version in ("v=", "v=abc", "19", "v=19 ", " v=19", "v=-19", "v=+19", "ver=19",
                        "v=" + "1" * 5000, "v=00000000019"):
            with self.assertRaises(InvalidFormatError):
                decode(make_hash(version=version))

    def test_unsupported_mode(self):
        for mode in ("argon2d", "ARGON2ID", "argon2", "", " argon2id", "bcrypt"):
            with self.assertRaises(UnsupportedModeError):
                decode(make_hash(mode=mode))

    def test_mode_checked_before_version(self):
        with self.assertRaises(UnsupportedModeError):
            decode(make_hash(mode="argon2d", version="v=18"))

    def test_zero_parameters(self):
        for params in ("m=0,t=1,p=4", "m=65536,t=0,p=4", "m=65536,t=1,p=0"):
            with self.assertRaises(InvalidFormatError):
                decode(make_hash(params=params))

    def test_out_of_range_parameters(self):
        for params in ("m=4294967296,t=1,p=4", "m=65536,t=4294967296,p=4", "m=65536,t=1,p=256"):
            with self.assertRaises(InvalidFormatError):
                decode(make_hash(params=params))

    def test_malformed_parameters(self):
        for params in ("t=1,m=65536,p=4",
                       "m=65536,t=1",
                       "m=65536,t=1,p=4,k=1",
                       "m=65536, t=1, p=4",
                       "m=-1,t=1,p=4",
                       "m=+8,t=1,p=4",
                       "m=x,t=1,p=4",
                       "m=65536,t=1,p=4 ",
                       "m=" + "9" * 5000 + ",t=1,p=4",
                       "m=65536,t=" + "1" * 5000 + ",p=4",
                       "m=65536,t=1,p=" + "4" * 5000,
                       "m=65536,t=1,p=0004",
                       ""):
            with self.assertRaises(InvalidFormatError):
                decode(make_hash(params=params))

    def test_invalid_base64_salt(self):
        with self.assertRaises(binascii.Error):
            decode(make_hash(salt="invalid!!!base64"))

    def test_invalid_base64_key(self):
        with self.assertRaises(binascii.Error):
            decode(make_hash(key="invalid!!!base64"))

    def test_payload_error_is_not_format_error(self):
        try:
            decode(make_hash(salt="invalid!!!base64"))
        except InvalidFormatError:
            self.fail("payload errors must not be reported as format errors")
        except binascii.Error:
            pass

    def test_padded_base64(self):
        with self.assertRaises(binascii.Error):
            decode(make_hash(salt=SALT_B64 + "="))

    def test_impossible_base64_length(self):
        with self.assertRaises(binascii.Error):
            decode(make_hash(key="AAAAA"))

    def test_non_ascii_base64(self):
        with self.assertRaises(binascii.Error):
            decode(make_hash(salt="dGVzdHNhbHé"))

    def test_empty_payload(self):
        for salt, key in (("", KEY_B64), (SALT_B64, ""), ("", "")):
            with self.assertRaises(InvalidFormatError):
                decode(make_hash(salt=salt, key=key))


class ParametersTest(unittest.TestCase):
    def test_validate(self):
        Parameters(1, 1, 1, 0, 0).validate()

        for args in ((0, 1, 1), (1, 0, 1), (1, 1, 0)):
            with self.assertRaises(InvalidFormatError):
                Parameters(*args, 16, 32).validate()

    def test_value_semantics(self):
        assert Parameters(8, 1, 1, 8, 8) == Parameters(8, 1, 1, 8, 8)
        assert Parameters(8, 1, 1, 8, 8) != Parameters(8, 1, 1, 8, 8, Mode.ARGON2I)

    def test_resolve_mode(self):
        assert resolve_mode(None) is Mode.ARGON2ID
        assert resolve_mode("") is Mode.ARGON2ID
        assert resolve_mode("argon2i") is Mode.ARGON2I
        assert resolve_mode(Mode.ARGON2ID) is Mode.ARGON2ID

        with self.assertRaises(UnsupportedModeError):
            resolve_mode("argon2d")


if __name__ == '__main__':
    unittest.main()
