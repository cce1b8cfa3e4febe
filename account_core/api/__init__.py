"""Public API package exports."""

from .dependencies import require_active_user
from account_core.api.routes.auth import router as auth_router
from account_core.api.routes.users import router as users_router

__all__ = ["auth_router", "require_active_user", "users_router"]
