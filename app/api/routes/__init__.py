from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.users import public_router as users_router
from app.api.routes.users import self_router

__all__ = ["health_router", "self_router", "users_router"]
