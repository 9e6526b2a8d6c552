"""Route modules."""

from .access import router as access_router
from .approvals import router as approvals_router
from .auth import router as auth_router
from .profiles import router as profiles_router

__all__ = ["access_router", "approvals_router", "auth_router", "profiles_router"]
