"""API Routes for rolekeeper."""

from rolekeeper.infrastructure.api.routes.roles_router import router as roles_router

__all__ = [
    "roles_router",
]
