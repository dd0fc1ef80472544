"""API endpoint modules for version 1."""

from .pi import router as pi_router

__all__ = ["pi_router"]
