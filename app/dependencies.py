# app/dependencies.py

"""
Request-scoped dependencies for FastAPI.

The reconciliation session and the local store live on app.state; routes
get them through these functions so tests can override them.
"""

from fastapi import Request

from app.core.session import ReconciliationSession
from app.storage import LocalStore


def get_session(request: Request) -> ReconciliationSession:
    """The app-wide reconciliation session."""
    return request.app.state.session


def get_local_store(request: Request) -> LocalStore:
    return request.app.state.local_store
