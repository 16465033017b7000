from .jobs import jobs_router
from .shared import shared_router
from .webhook import webhook_router

__all__ = ["jobs_router", "shared_router", "webhook_router"]
