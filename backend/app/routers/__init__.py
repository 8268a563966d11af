"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.
"""

from .api import router as api_router, set_services, clear_services

__all__ = [
    "api_router",
    "set_services",
    "clear_services",
]
