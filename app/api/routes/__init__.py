from __future__ import annotations

from app.api.routes.admin import router as admin_router
from app.api.routes.health import router as health_router
from app.api.routes.submissions import router as submissions_router

__all__ = ["admin_router", "health_router", "submissions_router"]
