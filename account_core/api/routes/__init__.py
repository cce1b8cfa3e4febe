"""API route modules."""

from . import auth
from . import users

__all__ = ["auth", "users"]
