"""
config.py — verification configuration and the security gates applied to it.

Configuration is immutable for the length of a verification call. It can be
built directly, from a plain mapping (JSON file, Flask app.config["OATH"]) or
from OATH_* environment variables.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union
import os

from .errors import InvalidConfiguration
from .otp_core import DEFAULT_DIGITS, DEFAULT_TIME_STEP, DYNAMIC_TRUNCATION

MIN_PASSWORD_LENGTH = 6     # RFC 4226 R4


class OathAlgorithm(str, Enum):
    HOTP = "HOTP"
    TOTP = "TOTP"


@dataclass(frozen=True)
class VerifierConfig:
    """
    Verification settings.

    totp_max_clock_drift is counted in time steps; the bound applied to the
    learned drift in seconds is max_clock_drift_seconds.
    """
    algorithm: Union[OathAlgorithm, str] = OathAlgorithm.TOTP
    min_shared_secret_length: int = 16
    password_length: int = DEFAULT_DIGITS
    checksum: bool = False
    truncation_offset: int = DYNAMIC_TRUNCATION
    hotp_window_size: int = 100
    totp_time_step_interval: int = DEFAULT_TIME_STEP
    totp_time_step_in_window: int = 2
    totp_max_clock_drift: int = 5

    @property
    def max_clock_drift_seconds(self) -> int:
        return self.totp_max_clock_drift * self.totp_time_step_interval

    @classmethod
    def from_dict(cls, cfg: Optional[Mapping]) -> "VerifierConfig":
        """Build a config from a mapping, falling back to defaults per key."""
        cfg = cfg or {}
        default = cls()
        return cls(
            algorithm=parse_algorithm(cfg.get("algorithm", default.algorithm)),
            min_shared_secret_length=int(cfg.get("min_shared_secret_length", default.min_shared_secret_length)),
            password_length=int(cfg.get("password_length", default.password_length)),
            checksum=_as_bool(cfg.get("checksum", default.checksum)),
            truncation_offset=int(cfg.get("truncation_offset", default.truncation_offset)),
            hotp_window_size=int(cfg.get("hotp_window_size", default.hotp_window_size)),
            totp_time_step_interval=int(cfg.get("totp_time_step_interval", default.totp_time_step_interval)),
            totp_time_step_in_window=int(cfg.get("totp_time_step_in_window", default.totp_time_step_in_window)),
            totp_max_clock_drift=int(cfg.get("totp_max_clock_drift", default.totp_max_clock_drift)),
        )

    @classmethod
    def from_env(cls, prefix: str = "OATH_", environ: Optional[Mapping] = None) -> "VerifierConfig":
        """Read OATH_ALGORITHM, OATH_PASSWORD_LENGTH, ... from the environment."""
        environ = os.environ if environ is None else environ
        cfg = {}
        for name in cls.__dataclass_fields__:
            key = prefix + name.upper()
            if key in environ:
                cfg[name] = environ[key]
        return cls.from_dict(cfg)


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_algorithm(value) -> Union[OathAlgorithm, str]:
    """
    Map "hotp"/"TOTP"/OathAlgorithm to the enum.

    Unknown values are returned unchanged so validate_config rejects them at
    verification time rather than at load time.
    """
    if isinstance(value, OathAlgorithm):
        return value
    try:
        return OathAlgorithm(str(value).strip().upper())
    except ValueError:
        return value


def validate_config(config: VerifierConfig) -> None:
    """
    Security gates, checked before any HMAC is computed.

    Raises:
        InvalidConfiguration: on the first violated gate
    """
    if config.min_shared_secret_length <= 0:
        raise InvalidConfiguration("Min Secret Key Length is not a valid value")

    # RFC 4226: at least 6 digits
    if config.password_length < MIN_PASSWORD_LENGTH:
        raise InvalidConfiguration("Password length is smaller than 6")

    if not isinstance(config.algorithm, OathAlgorithm):
        raise InvalidConfiguration("Invalid OTP algorithm")

    if config.hotp_window_size < 0:
        raise InvalidConfiguration("HOTP window size must not be negative")
    if config.totp_time_step_interval <= 0:
        raise InvalidConfiguration("TOTP time step interval must be positive")
    if config.totp_time_step_in_window < 0:
        raise InvalidConfiguration("TOTP time steps in window must not be negative")
    if config.totp_max_clock_drift < 0:
        raise InvalidConfiguration("TOTP max clock drift must not be negative")


def check_secret(config: VerifierConfig, secret: bytes) -> None:
    """Reject a stored secret shorter than the configured minimum (bytes)."""
    if len(secret) < config.min_shared_secret_length:
        raise InvalidConfiguration(
            f"Shared secret is shorter than {config.min_shared_secret_length} bytes"
        )
