"""HTTP API for Chronos.

Exposes entries, the habit checklist, export and sync as JSON endpoints
using FastAPI.
"""

from .app import create_app

__all__ = ["create_app"]
