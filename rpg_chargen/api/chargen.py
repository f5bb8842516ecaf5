"""Character generation session endpoints."""

from collections.abc import Awaitable

from fastapi import APIRouter, HTTPException, Request

from rpg_chargen.decoder import DecodeError
from rpg_chargen.errors import ChargenError
from rpg_chargen.models import ChargenState, Setup
from rpg_chargen.session import ChoiceError
from rpg_chargen.tables import TableNotFoundError, TableProviderError

from .deps import get_storage, require_character, session_for

router = APIRouter()


async def _run(transition: Awaitable[ChargenState]) -> ChargenState:
    """Await a session transition, mapping chargen errors to HTTP errors."""
    try:
        return await transition
    except TableNotFoundError as e:
        raise HTTPException(404, str(e))
    except (DecodeError, ChoiceError) as e:
        raise HTTPException(422, str(e))
    except TableProviderError as e:
        raise HTTPException(502, str(e))
    except ChargenError as e:
        raise HTTPException(400, str(e))


@router.get("/characters/{char_id}/chargen")
async def get_chargen(request: Request, char_id: str):
    """Current setup and run (run is null in setup mode)."""
    return await session_for(request, char_id).state()


@router.post("/characters/{char_id}/chargen/start")
async def start_chargen(request: Request, char_id: str, body: Setup):
    """Start a new run from the given setup."""
    return await _run(session_for(request, char_id).start(body))


@router.post("/characters/{char_id}/chargen/reroll")
async def reroll_chargen(request: Request, char_id: str):
    """Replace the offered cards; the roll budget is not touched."""
    return await _run(session_for(request, char_id).reroll())


@router.post("/characters/{char_id}/chargen/choose/{index}")
async def choose_card(request: Request, char_id: str, index: int):
    """Take one offered card by index."""
    return await _run(session_for(request, char_id).choose(index))


@router.post("/characters/{char_id}/chargen/finish")
async def finish_chargen(request: Request, char_id: str):
    """Finish now and post the biography summary."""
    return await _run(session_for(request, char_id).finish())


@router.post("/characters/{char_id}/chargen/reset")
async def reset_chargen(request: Request, char_id: str):
    """Restart from the stored setup."""
    return await _run(session_for(request, char_id).reset())


@router.post("/characters/{char_id}/chargen/clear")
async def clear_chargen(request: Request, char_id: str):
    """Drop the run and return to setup mode."""
    return await _run(session_for(request, char_id).clear())


@router.get("/characters/{char_id}/messages")
async def list_messages(request: Request, char_id: str):
    """Chat log: start notices, finish summaries, surfaced errors."""
    return require_character(get_storage(request), char_id).get_messages()
