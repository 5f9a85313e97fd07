"""
FLASK APP ENTRY POINT - OATH VERIFICATION SERVER
==================================================

Sets up the Flask app, CORS, the device database and registers the v2 API
blueprint.

Configuration:
- DATABASE_FILE: sqlite file with the device records
- OATH: mapping read by VerifierConfig.from_dict; defaults come from the
  OATH_* environment variables
"""
from dataclasses import asdict
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from oathverify import __version__
from oathverify.core.config import VerifierConfig
from oathverify.database.setup_database import DATABASE_FILE, setup_database

logger = logging.getLogger(__name__)


def create_app(config_overrides: dict = None) -> Flask:
    """Build the app; config_overrides wins over environment defaults."""
    app = Flask(__name__)
    app.config.update(
        DATABASE_FILE=DATABASE_FILE,
        OATH=asdict(VerifierConfig.from_env()),
    )
    if config_overrides:
        app.config.update(config_overrides)

    # Allow a frontend served from another origin to call the API
    CORS(app)

    setup_database(app.config["DATABASE_FILE"])

    from oathverify.backend.api_v2 import otp_bp_v2
    app.register_blueprint(otp_bp_v2)

    @app.route('/', methods=['GET'])
    def index():
        """API index: name, version and available endpoints."""
        return jsonify({
            "service": "oathverify",
            "version": __version__,
            "endpoints": [
                "POST /api/v2/verify/<device_name>",
                "POST /api/v2/verify_totp/<device_name>",
                "POST /api/v2/verify_hotp/<device_name>",
                "GET /api/v2/devices/<device_name>",
            ],
        })

    logger.info("OATH verification app created (database=%s)", app.config["DATABASE_FILE"])
    return app


if __name__ == '__main__':
    # Development server only
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host='0.0.0.0', port=5000)
