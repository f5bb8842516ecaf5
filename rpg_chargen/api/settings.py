"""Health check and settings endpoints."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from rpg_chargen.config import get_config, update_config

from .deps import get_storage

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Get app settings (default setup, reserved skill prefixes, table source)."""
    return get_config(get_storage(request).base_path)


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Update app settings (partial merge)."""
    try:
        return update_config(get_storage(request).base_path, body)
    except ValidationError as e:
        raise HTTPException(422, str(e))
