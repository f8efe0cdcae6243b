from manavault.api.cards import router as cards_router
from manavault.api.collection import router as collection_router
from manavault.api.decks import router as decks_router
from manavault.api.folders import router as folders_router
from manavault.api.health import router as health_router
from manavault.api.storage import router as storage_router
from manavault.api.wishlist import router as wishlist_router

__all__ = [
    "cards_router",
    "collection_router",
    "decks_router",
    "folders_router",
    "health_router",
    "storage_router",
    "wishlist_router",
]
