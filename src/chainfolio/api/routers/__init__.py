"""API routers package."""

from chainfolio.api.routers.portfolio import router as portfolio_router
from chainfolio.api.routers.chains import router as chains_router

__all__ = [
    "portfolio_router",
    "chains_router",
]
