"""Circle domain - groups of families with membership, invitations and chat"""

from .router import router

__all__ = ["router"]
