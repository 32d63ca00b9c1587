"""
API module for endpoint routes.

Exports:
    floats_router: Router serving the float aggregate (mounted at /api/v1)
"""

from floatmap.api.v1.floats import router as floats_router

__all__ = [
    "floats_router",
]
