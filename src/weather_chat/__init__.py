"""Weather chat server: sessions, weather lookups and generated replies.

This package provides a FastAPI application factory named ``create_app``
inside ``weather_chat/server.py`` (see :func:`create_app`).

Typical usage
-------------
from weather_chat import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the package version."""
    return __version__


def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    This forwards to :func:`weather_chat.server.create_app`; the import is
    deferred so the lightweight modules stay importable without FastAPI.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
