"""Verhaal API package.

An optional FastAPI service layer around Word import and draft validation.
"""

from .server import create_app  # noqa: F401
