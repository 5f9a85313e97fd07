"""sqlite3 store for OATH device records and verification attempts."""
from .setup_database import DATABASE_FILE, setup_database
