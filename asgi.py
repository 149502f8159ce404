"""
asgi.py -- Application assembly for videohub.

The ASGI servers' import target. api/main.py owns the app and its wiring;
this module only re-exports it under the conventional name so deployments
do not depend on the package layout.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
