# mentorship_hub/routers/__init__.py
from . import profile_router
from . import discovery_router
from . import mentorship_router
from . import rating_router

__all__ = [
    "profile_router",
    "discovery_router",
    "mentorship_router",
    "rating_router",
]
