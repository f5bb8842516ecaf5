"""Request-scoped helpers: storage lookup and session construction."""

from fastapi import HTTPException, Request

from rpg_chargen.config import get_config
from rpg_chargen.notify import ChatLogNotifier
from rpg_chargen.session import ChargenSession, open_session
from rpg_chargen.storage import Storage, StoredCharacter
from rpg_chargen.tables import provider_from_config


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def require_character(storage: Storage, char_id: str) -> StoredCharacter:
    character = storage.get_character(char_id)
    if character is None:
        raise HTTPException(404, "Character not found")
    return character


def session_for(request: Request, char_id: str) -> ChargenSession:
    """Build a session for one request: chat-log notifier, configured table source."""
    storage = get_storage(request)
    character = require_character(storage, char_id)
    config = get_config(storage.base_path)
    return open_session(
        character,
        provider_from_config(storage, config),
        notifier=ChatLogNotifier(character),
        skills=request.app.state.skills,
        config=config,
    )
