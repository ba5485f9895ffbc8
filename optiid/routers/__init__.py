"""
API routers for registry service endpoints.
"""

from . import allocation_router, health_router, registry_router

__all__ = ["allocation_router", "health_router", "registry_router"]
