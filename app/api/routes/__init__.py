from app.api.routes.ads import router as ads_router
from app.api.routes.auth import router as auth_router

__all__ = [
    "ads_router",
    "auth_router",
]
