"""
Flask transport for proctor code verification.

The core (proctor_core) knows nothing about HTTP; this package issues the
session cookie, applies CORS/CSP and maps outcomes to status codes.
"""

from .app import create_app

__all__ = ['create_app']
