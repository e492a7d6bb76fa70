"""
World Tracker API package.

Provides the FastAPI application for the World Tracker credit ledger.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
