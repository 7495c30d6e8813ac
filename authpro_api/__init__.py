"""
JSON API over the authpro core, built with Flask.
"""

from .app import create_app

__all__ = ["create_app"]
