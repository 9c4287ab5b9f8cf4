# app/routers/__init__.py

from app.routers import health
from app.routers import reference
from app.routers import reconcile
from app.routers import records

__all__ = ["health", "reference", "reconcile", "records"]
