"""
oathverify.core
===============

OATH one-time password verification (RFC 4226 HOTP, RFC 6238 TOTP) over a
device credential record.

──────────────────────────────────────────────
Algorithms
──────────────────────────────────────────────
- Code generation:
  code = Truncate(HMAC-SHA1(key=secret, msg=moving_factor)) mod 10^digits
  (+ optional RFC 4226 checksum digit).

- HOTP verification:
  counters [counter, counter + window] are tried in order; a match moves the
  stored counter to matched + 1.

- TOTP verification:
  steps around floor((now + drift) / interval) are tried closest first;
  only steps newer than the last accepted one are eligible, the matched
  boundary and the observed drift are written back.

──────────────────────────────────────────────
Usage
──────────────────────────────────────────────
>>> from oathverify.core import DeviceSettings, VerifierConfig, OathAlgorithm, verify_hotp
>>> config = VerifierConfig(algorithm=OathAlgorithm.HOTP, min_shared_secret_length=1)
>>> device = DeviceSettings(shared_secret="abcd", counter=0)
>>> verify_hotp(config, device, "564491")
>>> device.counter
1
"""
from .config import OathAlgorithm, VerifierConfig, validate_config
from .device import DeviceSettings
from .errors import (
    InvalidConfiguration,
    OathVerificationError,
    ReplayDetected,
    VerificationFailed,
)
from .otp_core import calc_checksum, generate_otp
from .verifier import HotpVerifier, TotpVerifier, verify_code, verify_hotp, verify_totp

__all__ = [
    "OathAlgorithm",
    "VerifierConfig",
    "validate_config",
    "DeviceSettings",
    "InvalidConfiguration",
    "OathVerificationError",
    "ReplayDetected",
    "VerificationFailed",
    "calc_checksum",
    "generate_otp",
    "HotpVerifier",
    "TotpVerifier",
    "verify_code",
    "verify_hotp",
    "verify_totp",
]
