from datetime import datetime, timezone

import pytest

from oathverify.core.config import OathAlgorithm, VerifierConfig
from oathverify.core.device import DeviceSettings

# 2019-04-01T11:59:55Z
NOW = int(datetime(2019, 4, 1, 11, 59, 55, tzinfo=timezone.utc).timestamp())

RFC4226_SECRET_HEX = b"12345678901234567890".hex()


def make_config(algorithm=OathAlgorithm.HOTP, **overrides) -> VerifierConfig:
    values = dict(
        algorithm=algorithm,
        min_shared_secret_length=1,
        password_length=6,
        checksum=False,
        truncation_offset=-1,
        hotp_window_size=100,
        totp_time_step_interval=30,
        totp_time_step_in_window=2,
        totp_max_clock_drift=5,
    )
    values.update(overrides)
    return VerifierConfig(**values)


@pytest.fixture()
def hotp_config():
    return make_config(OathAlgorithm.HOTP)


@pytest.fixture()
def totp_config():
    return make_config(OathAlgorithm.TOTP)


@pytest.fixture()
def device():
    return DeviceSettings(shared_secret="abcd", device_name="test-device")


@pytest.fixture()
def db_path(tmp_path):
    from oathverify.database.setup_database import setup_database

    path = str(tmp_path / "devices.db")
    setup_database(path)
    return path


@pytest.fixture()
def app(db_path):
    from oathverify.backend.app import create_app

    app = create_app({
        "TESTING": True,
        "DATABASE_FILE": db_path,
        "OATH": {
            "algorithm": "TOTP",
            "min_shared_secret_length": 1,
            "hotp_window_size": 100,
            "totp_time_step_in_window": 2,
            "totp_max_clock_drift": 5,
        },
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
