"""
otp_core.py — OATH code generation shared by the HOTP and TOTP verifiers.

Goals:
- Pure functions only: no file access, no clock reads, no logging of secrets.
- One generator (RFC 4226 §5.3) reused identically by both verifiers.
- Optional checksum digit per RFC 4226 Appendix (calcChecksum).

Security notes:
- HMAC-SHA1 as mandated by RFC 4226 / RFC 6238 for OATH devices.
- The 31-bit mask on the truncated value keeps the modulus non-negative.
"""

from typing import Tuple
import hmac
import hashlib
import struct

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # RFC 4226 minimum
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DYNAMIC_TRUNCATION = -1     # sentinel: offset comes from the digest's low nibble

# doubled digit after casting out nines: 0,2,4,6,8,1,3,5,7,9
DOUBLE_DIGITS = [0, 2, 4, 6, 8, 1, 3, 5, 7, 9]

MAX_MOVING_FACTOR = 2 ** 64


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Encode the moving factor as the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'

    Raises:
        ValueError: if the value does not fit an unsigned 64-bit integer
    """
    if i < 0 or i >= MAX_MOVING_FACTOR:
        raise ValueError(f"Moving factor out of range: {i}")
    return struct.pack(">Q", i)


def select_offset(hmac_digest: bytes, fixed_offset: int = DYNAMIC_TRUNCATION) -> int:
    """
    Pick the byte offset used for truncation.

    A fixed offset is honoured only when 4 bytes still fit after it (same rule
    as the RFC 4226 reference code); anything else, including the sentinel -1,
    means dynamic truncation: the low 4 bits of the last digest byte.
    """
    if 0 <= fixed_offset < len(hmac_digest) - 4:
        return fixed_offset
    return hmac_digest[-1] & 0x0F


def dynamic_truncate(hmac_digest: bytes, fixed_offset: int = DYNAMIC_TRUNCATION) -> int:
    """
    Apply RFC 4226 truncation and return the 31-bit unsigned binary code.

    - offset = select_offset(...)
    - take 4 bytes from offset, clear the MSB (0x7F) of the first one
    - big-endian unsigned integer

    Arguments:
        hmac_digest: HMAC digest (20 bytes for SHA1)
        fixed_offset: configured offset, or DYNAMIC_TRUNCATION
    """
    offset = select_offset(hmac_digest, fixed_offset)
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def calc_checksum(num: int, digits: int) -> int:
    """
    Luhn-style checksum digit from RFC 4226 Appendix (calcChecksum).

    Digits are walked from the least significant one; every other digit,
    starting with the rightmost, is replaced by its doubled-and-summed value.
    """
    double_digit = True
    total = 0
    while digits > 0:
        digit = num % 10
        num //= 10
        if double_digit:
            digit = DOUBLE_DIGITS[digit]
        total += digit
        double_digit = not double_digit
        digits -= 1
    result = total % 10
    if result > 0:
        result = 10 - result
    return result


def generate_otp(
    secret: bytes,
    moving_factor: int,
    digits: int = DEFAULT_DIGITS,
    checksum: bool = False,
    truncation_offset: int = DYNAMIC_TRUNCATION,
) -> str:
    """
    Generate an OATH code (RFC 4226 §5.3).

    Steps:
    1. Message = 8-byte big-endian moving factor
    2. HMAC-SHA1(key=secret, message)
    3. Truncate (dynamic or fixed offset) -> 31-bit integer
    4. otp = value % 10^digits
    5. Optionally append the checksum digit
    6. Zero-pad to digits (+1 with checksum)

    Arguments:
        secret: raw key bytes
        moving_factor: HOTP counter or TOTP time step (unsigned 64-bit)
        digits: number of code digits, checksum excluded
        checksum: append the RFC 4226 checksum digit
        truncation_offset: fixed offset or DYNAMIC_TRUNCATION

    Returns:
        str: the zero-padded decimal code
    """
    msg = int_to_bytes(moving_factor)
    digest = hmac.new(secret, msg, hashlib.sha1).digest()

    binary = dynamic_truncate(digest, truncation_offset)
    otp_val = binary % (10 ** digits)

    length = digits
    if checksum:
        otp_val = otp_val * 10 + calc_checksum(otp_val, digits)
        length += 1
    return str(otp_val).zfill(length)


def time_step(timestamp: int, timestep: int = DEFAULT_TIME_STEP, t0: int = 0) -> int:
    """TOTP moving factor: floor((timestamp - T0) / X)."""
    return (timestamp - t0) // timestep


# --- Convenience helpers (tests / tooling) ---------------------------------
def hotp_code(secret_hex: str, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """HOTP code for a hex-encoded secret, dynamic truncation, no checksum."""
    return generate_otp(bytes.fromhex(secret_hex), counter, digits)


def totp_code(
    secret_hex: str,
    timestamp: int,
    timestep: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
) -> Tuple[str, int]:
    """
    TOTP code for a hex-encoded secret at an explicit timestamp.

    Returns:
        (code, remaining_seconds): remaining seconds in the current step
    """
    code = hotp_code(secret_hex, time_step(timestamp, timestep), digits)
    remaining = int(timestep - (timestamp % timestep))
    return code, remaining
