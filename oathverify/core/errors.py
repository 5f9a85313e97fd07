"""Verification error taxonomy."""

from typing import Optional


class OathVerificationError(Exception):
    """Base class for every verification failure."""


class InvalidConfiguration(OathVerificationError):
    """A configuration or stored-secret precondition is violated.

    A setup/provisioning defect, never a user-facing "wrong code".
    """


class VerificationFailed(OathVerificationError):
    """No candidate code matched."""


class ReplayDetected(VerificationFailed):
    """The OTP matches a time step at or before the last accepted one."""

    MESSAGE_PREFIX = "Login failed attempting to use the same OTP in same Time Step: "

    def __init__(self, time_step: int, message: Optional[str] = None):
        super().__init__(message or f"{self.MESSAGE_PREFIX}{time_step}")
        self.time_step = time_step
