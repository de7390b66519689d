from __future__ import annotations

from app.api.routes.admin import router as admin_router
from app.api.routes.health import router as health_router
from app.api.routes.leads import router as leads_router

__all__ = ["admin_router", "health_router", "leads_router"]
