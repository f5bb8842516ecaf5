"""Character create/read endpoints."""

from fastapi import APIRouter, Request

from .deps import get_storage, require_character
from .models import CreateCharacter, UpdateProps

router = APIRouter()


@router.get("/characters")
async def list_characters(request: Request):
    """List all characters (id and name)."""
    return get_storage(request).list_characters()


@router.post("/characters", status_code=201)
async def create_character(request: Request, body: CreateCharacter):
    """Create a character; the id is derived from the name."""
    storage = get_storage(request)
    character = storage.create_character(body.name, body.props)
    return storage.read_character(character.id)


@router.get("/characters/{char_id}")
async def get_character(request: Request, char_id: str):
    """Get a character record including props and generation state."""
    storage = get_storage(request)
    require_character(storage, char_id)
    return storage.read_character(char_id)


@router.patch("/characters/{char_id}")
async def update_character(request: Request, char_id: str, body: UpdateProps):
    """Overwrite the given props fields."""
    storage = get_storage(request)
    require_character(storage, char_id)
    return storage.update_props(char_id, body.props)
