"""Version 1 API endpoints."""

from .endpoints import pi_router

__all__ = ["pi_router"]
