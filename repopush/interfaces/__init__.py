"""
User-facing entry points: the Python API and the CLI.
"""

from .api import RepoPush, IdentityProvider

__all__ = ["RepoPush", "IdentityProvider"]
