"""Routers package."""

from .clients import router as clients_router
from .payments import router as payments_router
from .promotions import router as promotions_router

__all__ = [
    "clients_router",
    "payments_router",
    "promotions_router",
]
