import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

DATABASE_FILE = os.getenv("OATH_DATABASE_FILE", "database/oath_devices.db")


def setup_database(path: str = DATABASE_FILE):
    """Create the device and attempt tables if they do not exist yet."""

    # Make sure the parent directory exists
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    cursor = conn.cursor()

    # One row per OATH device; the secret is stored hex-encoded
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS devices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        device_name TEXT NOT NULL UNIQUE,
        shared_secret TEXT NOT NULL,
        counter TEXT NOT NULL DEFAULT '0',
        last_login INTEGER NOT NULL DEFAULT 0,
        clock_drift_seconds INTEGER NOT NULL DEFAULT 0,
        checksum_digit BOOLEAN NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''')

    # Every verification attempt with its outcome (success/failure/replay/config_error)
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS otp_attempts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        device_id INTEGER,
        algorithm TEXT,
        outcome TEXT NOT NULL,
        detail TEXT,
        attempted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (device_id) REFERENCES devices (id)
    )
    ''')

    conn.commit()
    conn.close()
    logger.info("Database setup completed: %s", path)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    setup_database()
