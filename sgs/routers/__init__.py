"""
API v1 routers.
"""

from fastapi import APIRouter

from .api_keys import router as api_keys_router
from .files import router as files_router
from .projects import router as projects_router
from .status import router as status_router

router = APIRouter(prefix="/v1")
router.include_router(status_router)
router.include_router(projects_router)
router.include_router(files_router)
router.include_router(api_keys_router)

__all__ = [
  "router",
  "api_keys_router",
  "files_router",
  "projects_router",
  "status_router",
]
