"""
device.py — OATH device credential record.

The record belongs to the caller (store, API route, CLI). Verifiers receive
it for one call and mutate it in place only when a code is accepted.
"""

from dataclasses import asdict, dataclass, replace
import binascii
import re

from .errors import InvalidConfiguration

_WHITESPACE = re.compile(r"\s+")


@dataclass
class DeviceSettings:
    """
    Persisted state of one OATH authenticator.

    Fields:
        shared_secret: hex-encoded HMAC key
        counter: next expected HOTP counter
        last_login: epoch seconds of the last accepted TOTP step boundary
        clock_drift_seconds: learned TOTP clock offset
        device_name: opaque label, never interpreted here
        checksum_digit: whether the device appends a checksum digit
    """
    shared_secret: str
    counter: int = 0
    last_login: int = 0
    clock_drift_seconds: int = 0
    device_name: str = "OATH Device"
    checksum_digit: bool = False

    def secret_bytes(self) -> bytes:
        """
        Decode the hex secret into HMAC key bytes.

        Whitespace is dropped and an odd-length string is left-padded with
        one "0" before decoding.

        Raises:
            InvalidConfiguration: secret missing or not hex
        """
        secret = _WHITESPACE.sub("", self.shared_secret or "")
        if not secret:
            raise InvalidConfiguration("Shared secret is empty")
        if len(secret) % 2 != 0:
            secret = "0" + secret
        try:
            return binascii.unhexlify(secret)
        except (binascii.Error, ValueError) as e:
            raise InvalidConfiguration("Shared secret is not a valid hex string") from e

    def snapshot(self) -> "DeviceSettings":
        """Detached copy, used to restore or compare state."""
        return replace(self)

    def to_dict(self) -> dict:
        return asdict(self)

    def public_dict(self) -> dict:
        """State safe to return over the API (no secret)."""
        data = self.to_dict()
        data.pop("shared_secret")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceSettings":
        return cls(
            shared_secret=data["shared_secret"],
            counter=int(data.get("counter", 0)),
            last_login=int(data.get("last_login", 0)),
            clock_drift_seconds=int(data.get("clock_drift_seconds", 0)),
            device_name=data.get("device_name", "OATH Device"),
            checksum_digit=bool(data.get("checksum_digit", False)),
        )
