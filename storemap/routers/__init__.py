"""API Routers - FastAPI endpoint handlers"""

from . import stores
from . import chains
from . import users

__all__ = ["stores", "chains", "users"]
