"""
asgi.py -- ASGI entry point for TeamDesk.

Run with:  uvicorn asgi:app --reload
           uvicorn asgi:app --host 0.0.0.0 --port 3000

Configuration comes from the environment / .env (see core/config.py).
"""

from api.main import app

__all__ = ["app"]
