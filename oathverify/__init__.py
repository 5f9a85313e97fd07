"""oathverify: OATH HOTP/TOTP verification engine with a small Flask/sqlite host."""

__version__ = "1.0.0"
