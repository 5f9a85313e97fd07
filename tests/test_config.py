import pytest

from oathverify.core import verifier as verifier_module
from oathverify.core.config import OathAlgorithm, VerifierConfig, parse_algorithm, validate_config
from oathverify.core.device import DeviceSettings
from oathverify.core.errors import InvalidConfiguration
from oathverify.core.verifier import verify_code, verify_hotp, verify_totp

from conftest import NOW, make_config


@pytest.fixture()
def no_hmac(monkeypatch):
    calls = []

    def fake_generate(*args, **kwargs):
        calls.append(args)
        raise AssertionError("code generated despite invalid configuration")

    monkeypatch.setattr(verifier_module, "generate_otp", fake_generate)
    return calls


@pytest.mark.parametrize("overrides, message", [
    ({"min_shared_secret_length": 0}, "Min Secret Key Length"),
    ({"min_shared_secret_length": -3}, "Min Secret Key Length"),
    ({"password_length": 5}, "Password length is smaller than 6"),
    ({"password_length": 0}, "Password length is smaller than 6"),
    ({"algorithm": "OCRA"}, "Invalid OTP algorithm"),
    ({"hotp_window_size": -1}, "HOTP window"),
    ({"totp_time_step_interval": 0}, "interval"),
    ({"totp_time_step_in_window": -1}, "window"),
    ({"totp_max_clock_drift": -1}, "drift"),
])
def test_invalid_config_is_rejected(overrides, message):
    with pytest.raises(InvalidConfiguration, match=message):
        validate_config(make_config(**overrides))


@pytest.mark.parametrize("overrides", [
    {"min_shared_secret_length": 0},
    {"password_length": 5},
])
@pytest.mark.parametrize("otp", ["564491", "433484", "", "garbage"])
def test_invalid_config_fails_every_attempt_without_hmac(no_hmac, overrides, otp):
    device = DeviceSettings(shared_secret="abcd", last_login=NOW - 120)
    before = device.snapshot()

    with pytest.raises(InvalidConfiguration):
        verify_hotp(make_config(OathAlgorithm.HOTP, **overrides), device, otp)
    with pytest.raises(InvalidConfiguration):
        verify_totp(make_config(OathAlgorithm.TOTP, **overrides), device, otp, NOW)

    assert no_hmac == []
    assert device == before


def test_short_secret_is_rejected_before_hmac(no_hmac):
    device = DeviceSettings(shared_secret="abcd")
    with pytest.raises(InvalidConfiguration, match="shorter than 3 bytes"):
        verify_hotp(make_config(min_shared_secret_length=3), device, "564491")
    assert no_hmac == []
    assert device.counter == 0


def test_non_hex_secret_is_invalid_configuration(hotp_config):
    device = DeviceSettings(shared_secret="not-hex!")
    with pytest.raises(InvalidConfiguration):
        verify_hotp(hotp_config, device, "123456")


def test_missing_settings(hotp_config):
    with pytest.raises(InvalidConfiguration, match="Invalid stored settings"):
        verify_code(hotp_config, None, "123456")


def test_unknown_algorithm_rejected_by_dispatcher(device):
    with pytest.raises(InvalidConfiguration, match="Invalid OTP algorithm"):
        verify_code(make_config(algorithm="OCRA"), device, "564491")


def test_secret_decoding():
    assert DeviceSettings(shared_secret="ab cd").secret_bytes() == b"\xab\xcd"
    assert DeviceSettings(shared_secret="abc").secret_bytes() == b"\x0a\xbc"
    assert DeviceSettings(shared_secret="ABCD").secret_bytes() == b"\xab\xcd"
    with pytest.raises(InvalidConfiguration):
        DeviceSettings(shared_secret="").secret_bytes()


def test_from_dict_defaults_and_parsing():
    config = VerifierConfig.from_dict({"algorithm": "hotp", "password_length": "8", "checksum": "true"})
    assert config.algorithm is OathAlgorithm.HOTP
    assert config.password_length == 8
    assert config.checksum is True
    assert config.hotp_window_size == VerifierConfig().hotp_window_size
    assert VerifierConfig.from_dict(None) == VerifierConfig()


def test_from_env():
    config = VerifierConfig.from_env(environ={
        "OATH_ALGORITHM": "TOTP",
        "OATH_TOTP_TIME_STEP_INTERVAL": "60",
        "OATH_TOTP_MAX_CLOCK_DRIFT": "2",
        "UNRELATED": "x",
    })
    assert config.algorithm is OathAlgorithm.TOTP
    assert config.totp_time_step_interval == 60
    assert config.max_clock_drift_seconds == 120


def test_parse_algorithm_keeps_unknown_values():
    assert parse_algorithm(OathAlgorithm.TOTP) is OathAlgorithm.TOTP
    assert parse_algorithm(" totp ") is OathAlgorithm.TOTP
    assert parse_algorithm("ocra") == "ocra"


def test_from_dict_ignores_orchestration_keys():
    # recovery-code routing belongs to the authentication flow, not the verifier
    assert VerifierConfig.from_dict({"allow_recovery_code_usage": True}) == VerifierConfig()
    assert not hasattr(VerifierConfig(), "allow_recovery_code_usage")
