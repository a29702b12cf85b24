"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import logging
import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from recruiting.services.errors import RecruitingError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
RATE_LIMIT = os.getenv("RATE_LIMIT", "100/15minutes")
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def http_error(e: Exception, action: str) -> HTTPException:
    """
    Translate a service exception into the HTTPException a route raises.

    Business-rule errors keep their message and status; anything else is
    logged and collapsed into a generic 500.
    """
    if isinstance(e, RecruitingError):
        return HTTPException(status_code=e.status_code, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Error {action}: {str(e)}")
    return HTTPException(status_code=500, detail=f"Error {action}")


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from recruiting.api.routes.profiles import router as profiles_router  # noqa: E402
from recruiting.api.routes.organizations import router as organizations_router  # noqa: E402
from recruiting.api.routes.scoutings import router as scoutings_router  # noqa: E402
from recruiting.api.routes.applications import router as applications_router  # noqa: E402
from recruiting.api.routes.notifications import router as notifications_router  # noqa: E402

router = APIRouter()
router.include_router(profiles_router)
router.include_router(organizations_router)
router.include_router(scoutings_router)
router.include_router(applications_router)
router.include_router(notifications_router)
