from dataclasses import replace
import logging
import sqlite3
from typing import Optional

from oathverify.core.config import VerifierConfig
from oathverify.core.device import DeviceSettings
from oathverify.core.errors import InvalidConfiguration, ReplayDetected, VerificationFailed
from oathverify.core.verifier import verify_code

from .setup_database import DATABASE_FILE, setup_database

logger = logging.getLogger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"
OUTCOME_REPLAY = "replay"
OUTCOME_CONFIG_ERROR = "config_error"
OUTCOME_NOT_REGISTERED = "not_registered"

_DEVICE_COLUMNS = "id, device_name, shared_secret, counter, last_login, clock_drift_seconds, checksum_digit"


def get_db_connection(path: str = DATABASE_FILE) -> sqlite3.Connection:
    """Open the device database (autocommit; transactions are explicit)."""
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row  # rows behave like dicts
    return conn


def _row_to_device(row: sqlite3.Row) -> DeviceSettings:
    # counter is stored as TEXT: the full unsigned 64-bit range does not fit INTEGER
    return DeviceSettings.from_dict(dict(row))


def add_device(device: DeviceSettings, path: str = DATABASE_FILE) -> tuple[bool, str]:
    """Store a new device record. The secret must already be provisioned."""
    conn = get_db_connection(path)
    try:
        conn.execute(
            """INSERT INTO devices (device_name, shared_secret, counter, last_login,
                                    clock_drift_seconds, checksum_digit)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (device.device_name, device.shared_secret, str(device.counter), device.last_login,
             device.clock_drift_seconds, device.checksum_digit),
        )
        logger.info("Device '%s' added", device.device_name)
        return (True, device.device_name)
    except sqlite3.IntegrityError:
        message = f"Device '{device.device_name}' already exists."
        logger.warning(message)
        return (False, message)
    finally:
        conn.close()


def _load_device(conn: sqlite3.Connection, device_name: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        f"SELECT {_DEVICE_COLUMNS} FROM devices WHERE device_name = ?", (device_name,)
    ).fetchone()


def get_device(device_name: str, path: str = DATABASE_FILE) -> Optional[DeviceSettings]:
    """Load a device record, or None when it is not registered."""
    conn = get_db_connection(path)
    try:
        row = _load_device(conn, device_name)
    finally:
        conn.close()

    if row:
        return _row_to_device(row)

    logger.debug("Device '%s' not found in the database.", device_name)
    return None


def _save_state(conn: sqlite3.Connection, device: DeviceSettings) -> None:
    conn.execute(
        """UPDATE devices SET counter = ?, last_login = ?, clock_drift_seconds = ?
           WHERE device_name = ?""",
        (str(device.counter), device.last_login, device.clock_drift_seconds, device.device_name),
    )


def save_device(device: DeviceSettings, path: str = DATABASE_FILE) -> None:
    """Persist the verification state (counter, last login, drift) of a device."""
    conn = get_db_connection(path)
    try:
        _save_state(conn, device)
    finally:
        conn.close()


def device_exists(device_name: str, path: str = DATABASE_FILE) -> bool:
    conn = get_db_connection(path)
    try:
        return _load_device(conn, device_name) is not None
    finally:
        conn.close()


def _log_attempt(conn: sqlite3.Connection, device_id: Optional[int], algorithm: str,
                 outcome: str, detail: str = "") -> None:
    conn.execute(
        "INSERT INTO otp_attempts (device_id, algorithm, outcome, detail) VALUES (?, ?, ?, ?)",
        (device_id, algorithm, outcome, detail),
    )


def log_otp_attempt(device_id: Optional[int], algorithm: str, outcome: str,
                    detail: str = "", path: str = DATABASE_FILE) -> None:
    """Record one verification attempt. The submitted code is never stored."""
    conn = get_db_connection(path)
    try:
        _log_attempt(conn, device_id, algorithm, outcome, detail)
    finally:
        conn.close()


def get_attempts(device_name: str, path: str = DATABASE_FILE) -> list[dict]:
    """Attempts logged for a device, oldest first."""
    conn = get_db_connection(path)
    try:
        rows = conn.execute(
            """SELECT a.algorithm, a.outcome, a.detail, a.attempted_at
               FROM otp_attempts a JOIN devices d ON d.id = a.device_id
               WHERE d.device_name = ? ORDER BY a.id""",
            (device_name,),
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]


def verify_device_otp(device_name: str, otp: str, config: VerifierConfig,
                      now: Optional[int] = None, path: str = DATABASE_FILE) -> str:
    """
    Load, verify and persist one device inside a single write transaction.

    BEGIN IMMEDIATE takes the sqlite write lock up front, so two
    verifications of the same device cannot both read the same state.

    Returns one of the OUTCOME_* strings.
    """
    algorithm = getattr(config.algorithm, "value", str(config.algorithm))
    conn = get_db_connection(path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        row = _load_device(conn, device_name)
        if row is None:
            conn.execute("ROLLBACK")
            logger.info("Verification for unknown device '%s'", device_name)
            return OUTCOME_NOT_REGISTERED

        device = _row_to_device(row)
        if device.checksum_digit and not config.checksum:
            config = replace(config, checksum=True)
        try:
            verify_code(config, device, otp, now)
        except ReplayDetected as e:
            outcome, detail = OUTCOME_REPLAY, str(e)
        except VerificationFailed as e:
            outcome, detail = OUTCOME_FAILURE, str(e)
        except InvalidConfiguration as e:
            outcome, detail = OUTCOME_CONFIG_ERROR, str(e)
            logger.error("Configuration error verifying '%s': %s", device_name, e)
        else:
            outcome, detail = OUTCOME_SUCCESS, ""
            _save_state(conn, device)

        _log_attempt(conn, row["id"], algorithm, outcome, detail)
        conn.execute("COMMIT")
        return outcome
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


__all__ = [
    "setup_database",
    "get_db_connection",
    "add_device",
    "get_device",
    "save_device",
    "device_exists",
    "log_otp_attempt",
    "get_attempts",
    "verify_device_otp",
]
