import base64

import pyotp
import pytest

from oathverify.core.otp_core import (
    calc_checksum,
    dynamic_truncate,
    generate_otp,
    hotp_code,
    int_to_bytes,
    select_offset,
    time_step,
    totp_code,
)

from conftest import NOW, RFC4226_SECRET_HEX

# RFC 4226 Appendix D
RFC4226_CODES = [
    "755224", "287082", "359152", "969429", "338314",
    "254676", "287922", "162583", "399871", "520489",
]


def test_rfc4226_test_vectors():
    secret = bytes.fromhex(RFC4226_SECRET_HEX)
    for counter, expected in enumerate(RFC4226_CODES):
        assert generate_otp(secret, counter) == expected


def test_matches_pyotp_for_large_counters():
    secret = bytes.fromhex(RFC4226_SECRET_HEX)
    oracle = pyotp.HOTP(base64.b32encode(secret).decode("ascii"))
    for counter in (0, 1, 255, 65536, 2 ** 32 + 7, 2 ** 63 + 11):
        assert generate_otp(secret, counter) == oracle.at(counter)


def test_known_codes_for_hex_secret():
    assert hotp_code("abcd", 0) == "564491"
    assert hotp_code("abcd", 1) == "853971"


def test_totp_code_uses_time_step():
    code, remaining = totp_code("abcd", NOW)
    assert code == "433484"
    assert remaining == 5
    assert time_step(NOW) == NOW // 30


def test_length_and_digits():
    secret = bytes.fromhex("abcd")
    for digits in (6, 7, 8, 9, 10):
        for counter in range(20):
            code = generate_otp(secret, counter, digits)
            assert len(code) == digits
            assert code.isdigit()


def test_eight_digits_keeps_more_of_the_truncated_value():
    assert generate_otp(bytes.fromhex("abcd"), 0, 8) == "51564491"


def test_checksum_digit_appended():
    code = generate_otp(bytes.fromhex("abcd"), 0, 6, checksum=True)
    assert len(code) == 7
    assert code == "5644919"


def test_checksum_makes_luhn_valid_number():
    secret = bytes.fromhex(RFC4226_SECRET_HEX)
    for counter in range(10):
        code = generate_otp(secret, counter, 6, checksum=True)
        total = 0
        for i, ch in enumerate(reversed(code)):
            d = int(ch)
            if i % 2 == 1:
                d = d * 2 - 9 if d * 2 > 9 else d * 2
            total += d
        assert total % 10 == 0


def test_calc_checksum_zero():
    assert calc_checksum(0, 6) == 0


def test_fixed_truncation_offset():
    secret = bytes.fromhex("abcd")
    assert generate_otp(secret, 0, truncation_offset=1) == "072728"


def test_out_of_range_offset_falls_back_to_dynamic():
    secret = bytes.fromhex("abcd")
    assert generate_otp(secret, 0, truncation_offset=16) == "564491"
    assert generate_otp(secret, 0, truncation_offset=100) == "564491"


def test_select_offset():
    digest = bytes(range(19)) + b"\x0b"
    assert select_offset(digest) == 11
    assert select_offset(digest, 3) == 3
    assert select_offset(digest, 15) == 15
    assert select_offset(digest, 16) == 11


def test_truncation_masks_sign_bit():
    digest = b"\xff" * 19 + b"\x00"
    assert dynamic_truncate(digest) == 0x7FFFFFFF


def test_int_to_bytes_range():
    assert int_to_bytes(1) == b"\x00" * 7 + b"\x01"
    assert int_to_bytes(2 ** 64 - 1) == b"\xff" * 8
    with pytest.raises(ValueError):
        int_to_bytes(-1)
    with pytest.raises(ValueError):
        int_to_bytes(2 ** 64)
