"""Route modules."""

from .storyboards import router as storyboards_router
from .wallet import router as wallet_router

__all__ = ["storyboards_router", "wallet_router"]
