"""API dependency exports."""

from account_core.db.session import get_db

from .auth import get_auth_service, require_active_user

__all__ = ["get_auth_service", "get_db", "require_active_user"]
