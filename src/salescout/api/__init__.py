"""
HTTP surface for Salescout.
"""
from .app import create_app

__all__ = ["create_app"]
