"""Flask host exposing the OATH verification API."""
from .app import create_app
