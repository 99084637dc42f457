"""
API routers package
"""

from matcher.routers.matches import router as matches_router
