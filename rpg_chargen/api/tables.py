"""Roll table endpoints (local table store)."""

from fastapi import APIRouter, HTTPException, Request

from rpg_chargen.models import Table
from rpg_chargen.storage import TableConflictError

from .deps import get_storage

router = APIRouter()


@router.get("/tables")
async def list_tables(request: Request):
    """List stored tables (id and name)."""
    return get_storage(request).list_tables()


@router.put("/tables/{ref}")
async def put_table(request: Request, ref: str, body: Table):
    """Create or replace a table. The path ref wins over body.id."""
    table = body.model_copy(update={"id": ref})
    try:
        get_storage(request).save_table(table)
    except TableConflictError as e:
        raise HTTPException(409, str(e))
    return table


@router.get("/tables/{ref}")
async def get_table(request: Request, ref: str):
    """Get one table with all of its rows."""
    table = get_storage(request).get_table(ref)
    if table is None:
        raise HTTPException(404, "Table not found")
    return table
