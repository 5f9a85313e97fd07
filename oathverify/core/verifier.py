"""
verifier.py — HOTP (RFC 4226) and TOTP (RFC 6238) verification.

Both verifiers share otp_core.generate_otp and differ only in how they pick
candidate moving factors and what they write back to the device record.

Contract for every verify():
- configuration and secret length are checked before any HMAC is computed
- the record is mutated only when a code is accepted, in one final step
- failures are raised as OathVerificationError subclasses
"""

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional
import hmac
import logging
import time

from .config import OathAlgorithm, VerifierConfig, check_secret, validate_config
from .device import DeviceSettings
from .errors import InvalidConfiguration, ReplayDetected, VerificationFailed
from .otp_core import MAX_MOVING_FACTOR, generate_otp

logger = logging.getLogger(__name__)


def _codes_match(expected: str, otp: str) -> bool:
    # compare_digest needs ASCII str; anything else can never match
    if not isinstance(otp, str) or not otp.isascii():
        return False
    return hmac.compare_digest(expected, otp)


class OathVerifier(ABC):
    """Common prologue: gates, secret decoding, code generation."""

    def __init__(self, config: VerifierConfig, settings: DeviceSettings):
        self.config = config
        self.settings = settings

    def _prepare(self) -> bytes:
        validate_config(self.config)
        if self.settings is None:
            raise InvalidConfiguration("Invalid stored settings")
        secret = self.settings.secret_bytes()
        check_secret(self.config, secret)
        return secret

    def _generate(self, secret: bytes, moving_factor: int) -> str:
        return generate_otp(
            secret,
            moving_factor,
            digits=self.config.password_length,
            checksum=self.config.checksum,
            truncation_offset=self.config.truncation_offset,
        )

    @abstractmethod
    def verify(self, otp: str) -> None:
        """Accept otp and update the record, or raise."""


class HotpVerifier(OathVerifier):
    """Counter-based verification with a forward resynchronization window."""

    def verify(self, otp: str) -> None:
        """
        Search counter .. counter + hotp_window_size for a match.

        On success the stored counter moves to matched + 1; on failure it is
        left untouched.

        Raises:
            InvalidConfiguration: config or secret gate violated
            VerificationFailed: no counter in the window matched
        """
        secret = self._prepare()
        counter = self.settings.counter
        if counter < 0:
            raise InvalidConfiguration("Invalid stored settings: negative counter")

        last = min(counter + self.config.hotp_window_size, MAX_MOVING_FACTOR - 1)
        for candidate in range(counter, last + 1):
            if _codes_match(self._generate(secret, candidate), otp):
                self.settings.counter = candidate + 1
                logger.debug(
                    "HOTP accepted for %s at counter offset %d",
                    self.settings.device_name, candidate - counter,
                )
                return

        logger.debug("HOTP rejected for %s", self.settings.device_name)
        raise VerificationFailed("Invalid OTP")


class TotpVerifier(OathVerifier):
    """Time-based verification with replay prevention and drift learning."""

    def __init__(self, config: VerifierConfig, settings: DeviceSettings, now: int):
        super().__init__(config, settings)
        self.now = int(now)

    def candidate_offsets(self) -> Iterator[int]:
        """0, -1, +1, -2, +2, ...: closest to now first."""
        yield 0
        for distance in range(1, self.config.totp_time_step_in_window + 1):
            yield -distance
            yield distance

    def verify(self, otp: str) -> None:
        """
        Search the steps around (now + learned drift) for a match.

        Only steps whose boundary is strictly newer than last_login are
        eligible. On success last_login becomes the matched boundary and the
        drift becomes (matched boundary - current boundary), clamped.

        Raises:
            InvalidConfiguration: config or secret gate violated
            ReplayDetected: the code is only valid for an already used step
            VerificationFailed: no step in the window matched
        """
        secret = self._prepare()
        if self.settings.last_login < 0:
            raise InvalidConfiguration("Invalid stored settings: negative last login")

        interval = self.config.totp_time_step_interval
        last_login = self.settings.last_login
        base_step = (self.now + self.settings.clock_drift_seconds) // interval

        replayed: List[int] = []
        for offset in self.candidate_offsets():
            step = base_step + offset
            if step < 0:
                continue
            boundary = step * interval
            if boundary <= last_login:
                replayed.append(step)
                continue
            if _codes_match(self._generate(secret, step), otp):
                self._accept(boundary)
                return

        replayed_step = self._find_replayed(secret, replayed, otp)
        if replayed_step is not None:
            error = ReplayDetected(replayed_step)
            logger.warning("TOTP replay for %s: %s", self.settings.device_name, error)
            raise error

        logger.debug("TOTP rejected for %s", self.settings.device_name)
        raise VerificationFailed("Invalid OTP")

    def _accept(self, boundary: int) -> None:
        interval = self.config.totp_time_step_interval
        limit = self.config.max_clock_drift_seconds
        drift = boundary - (self.now // interval) * interval
        drift = max(-limit, min(limit, drift))

        self.settings.clock_drift_seconds = drift
        self.settings.last_login = boundary
        logger.debug(
            "TOTP accepted for %s, clock drift now %ds", self.settings.device_name, drift
        )

    def _find_replayed(self, secret: bytes, steps: List[int], otp: str) -> Optional[int]:
        for step in steps:
            if _codes_match(self._generate(secret, step), otp):
                return step
        return None


# --- Entry points ----------------------------------------------------------
def verify_hotp(config: VerifierConfig, settings: DeviceSettings, otp: str) -> None:
    """Verify an HOTP code, advancing settings.counter on success."""
    HotpVerifier(config, settings).verify(otp)


def verify_totp(config: VerifierConfig, settings: DeviceSettings, otp: str, now: int) -> None:
    """Verify a TOTP code at epoch second `now`, updating last_login and drift."""
    TotpVerifier(config, settings, now).verify(otp)


def verify_code(
    config: VerifierConfig,
    settings: Optional[DeviceSettings],
    otp: str,
    now: Optional[int] = None,
) -> None:
    """
    Verify with the algorithm named by the configuration.

    `now` only matters for TOTP and defaults to the current wall clock.
    """
    validate_config(config)
    if config.algorithm is OathAlgorithm.HOTP:
        verify_hotp(config, settings, otp)
    else:
        if now is None:
            now = int(time.time())
        verify_totp(config, settings, otp, now)
