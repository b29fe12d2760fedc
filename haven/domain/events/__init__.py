"""Event domain - playdates, learning sessions and co-op days with RSVPs and chat"""

from .router import router

__all__ = ["router"]
