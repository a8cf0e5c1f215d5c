from server.routes.debug import router as debug_router
from server.routes.estimate import router as estimate_router

ALL_ROUTERS = [
    debug_router,
    estimate_router,
]

__all__ = ["ALL_ROUTERS"]
