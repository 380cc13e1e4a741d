from ponder.api.cards import router as cards_router
from ponder.api.health import router as health_router

__all__ = [
    "cards_router",
    "health_router",
]
