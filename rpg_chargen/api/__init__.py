"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, config), characters, tables, chargen
(session transitions and the per-character chat log).
"""

from fastapi import APIRouter

from .chargen import router as chargen_router
from .characters import router as characters_router
from .settings import router as settings_router
from .tables import router as tables_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(characters_router)
router.include_router(tables_router)
router.include_router(chargen_router)
