"""
OATH VERIFICATION API - VERSION 2 (MULTI-DEVICE)

Every endpoint takes the device name in the URL. The route is the caller of
the verification engine: it loads the device record, verifies, persists on
success and maps the outcome to an HTTP response.

Examples:
- POST /api/v2/verify/alice-phone        {"code": "123456"}
- POST /api/v2/verify_totp/alice-phone   {"code": "123456"}
- POST /api/v2/verify_hotp/alice-token   {"code": "123456"}
- GET  /api/v2/devices/alice-phone

Replay and wrong code share one response so a client cannot tell them apart;
the distinction only exists in the logs and the otp_attempts table.
"""

from dataclasses import replace
import logging

from flask import Blueprint, current_app, jsonify, request

from oathverify.core.config import OathAlgorithm, VerifierConfig
from oathverify.database.db_manager import (
    OUTCOME_CONFIG_ERROR,
    OUTCOME_NOT_REGISTERED,
    OUTCOME_REPLAY,
    OUTCOME_SUCCESS,
    get_device,
    verify_device_otp,
)

logger = logging.getLogger(__name__)

otp_bp_v2 = Blueprint('otp_v2', __name__, url_prefix='/api/v2')


def _verifier_config() -> VerifierConfig:
    return VerifierConfig.from_dict(current_app.config.get("OATH"))


def _database_file() -> str:
    return current_app.config["DATABASE_FILE"]


def _verify(device_name: str, config: VerifierConfig):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "code" not in data:
        return jsonify({"error": "OTP code is required in JSON body"}), 400

    # TOTP time always comes from the server clock, never from the request
    outcome = verify_device_otp(
        device_name, str(data["code"]), config, now=None, path=_database_file()
    )

    if outcome == OUTCOME_SUCCESS:
        return jsonify({"valid": True, "device": device_name})
    if outcome == OUTCOME_NOT_REGISTERED:
        return jsonify({"valid": False, "error": "not_registered"}), 404
    if outcome == OUTCOME_CONFIG_ERROR:
        return jsonify({"valid": False, "error": "configuration_error"}), 500
    if outcome == OUTCOME_REPLAY:
        logger.warning("Replayed OTP submitted for device '%s'", device_name)
    return jsonify({"valid": False, "error": "invalid_otp"}), 401


@otp_bp_v2.route('/verify/<string:device_name>', methods=['POST'])
def verify_for_device(device_name):
    """
    Verify with the algorithm configured for the app.
    Body: { "code": "123456" }
    """
    return _verify(device_name, _verifier_config())


@otp_bp_v2.route('/verify_totp/<string:device_name>', methods=['POST'])
def verify_totp_for_device(device_name):
    """
    Verify a TOTP code regardless of the configured algorithm.
    Body: { "code": "123456" }
    """
    return _verify(device_name, replace(_verifier_config(), algorithm=OathAlgorithm.TOTP))


@otp_bp_v2.route('/verify_hotp/<string:device_name>', methods=['POST'])
def verify_hotp_for_device(device_name):
    """
    Verify an HOTP code regardless of the configured algorithm.
    Body: { "code": "123456" }
    """
    return _verify(device_name, replace(_verifier_config(), algorithm=OathAlgorithm.HOTP))


@otp_bp_v2.route('/devices/<string:device_name>', methods=['GET'])
def get_device_state(device_name):
    """Non-secret verification state of a device."""
    device = get_device(device_name, path=_database_file())
    if device is None:
        return jsonify({"error": f"Device '{device_name}' not found."}), 404
    return jsonify(device.public_dict())
