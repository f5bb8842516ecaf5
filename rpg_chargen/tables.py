"""Table resource provider — where roll tables come from.

The generation flow only needs three operations, expressed as a protocol:

    async def resolve_table(self, ref: str) -> Table | None: ...
    async def draw_row(self, table: Table) -> TableRow: ...
    async def list_rows(self, table: Table) -> list[TableRow]: ...

`draw_row` is a single uniform draw (used for contact/body/misc/item
sub-draws); `list_rows` returns the full pool (used for card offers, which
sample without replacement themselves).

Two implementations are provided:

    StorageTableProvider — tables stored as JSON files next to characters.
    HttpTableProvider    — tables fetched from a host that serves them at
                           GET {base_url}/tables/{ref}.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from rpg_chargen.errors import ChargenError
from rpg_chargen.models import Table, TableRow
from rpg_chargen.storage import Storage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TableNotFoundError(ChargenError):
    """Raised when a table reference cannot be resolved."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"RollTable not found: {ref}")


class TableProviderError(ChargenError):
    """Raised for empty tables and for failures talking to a table host."""


# ---------------------------------------------------------------------------
# Protocol: every provider must match these signatures
# ---------------------------------------------------------------------------

class TableProvider(Protocol):
    async def resolve_table(self, ref: str) -> Table | None: ...

    async def draw_row(self, table: Table) -> TableRow: ...

    async def list_rows(self, table: Table) -> list[TableRow]: ...


async def require_table(provider: TableProvider, ref: str | None) -> Table:
    """Resolve `ref` or raise TableNotFoundError."""
    ref = str(ref or "").strip()
    table = await provider.resolve_table(ref) if ref else None
    if table is None:
        raise TableNotFoundError(ref)
    return table


def _draw_uniform(table: Table, rng: random.Random | None) -> TableRow:
    if not table.rows:
        raise TableProviderError(f'RollTable "{table.name}" has no results.')
    source: Any = rng or random
    return source.choice(table.rows)


# ---------------------------------------------------------------------------
# StorageTableProvider: tables saved through Storage
# ---------------------------------------------------------------------------

class StorageTableProvider:
    """Reads tables from the JSON file store."""

    def __init__(self, storage: Storage, rng: random.Random | None = None) -> None:
        self._storage = storage
        self._rng = rng

    async def resolve_table(self, ref: str) -> Table | None:
        try:
            return self._storage.get_table(ref)
        except (ValueError, ValidationError) as e:
            raise TableProviderError(f"Stored table {ref} is unreadable: {e}") from e

    async def draw_row(self, table: Table) -> TableRow:
        row = _draw_uniform(table, self._rng)
        logger.debug("drew row %s from %s", row.id, table.name)
        return row

    async def list_rows(self, table: Table) -> list[TableRow]:
        return list(table.rows)


# ---------------------------------------------------------------------------
# HttpTableProvider: tables served by a remote host
# ---------------------------------------------------------------------------

class HttpTableProvider:
    """Async HTTP client for a host that serves roll tables as JSON.

    GET {base_url}/tables/{ref} → Table JSON; 404 means "not found".

    Args:
        base_url: Base URL of the table host, e.g. "http://localhost:30000/api".
        api_key:  Bearer token, or empty string if not required.
        timeout:  HTTP timeout in seconds. Defaults to 30.
        rng:      Optional seeded RNG for single-row draws.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        rng: random.Random | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._rng = rng

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _url(self, ref: str) -> str:
        return f"{self._base_url}/tables/{quote(ref, safe='')}"

    async def resolve_table(self, ref: str) -> Table | None:
        url = self._url(ref)
        logger.debug("table fetch ref=%s url=%s", ref, url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, headers=self._headers())
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise TableProviderError(f"Cannot connect to table host at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise TableProviderError(
                f"Table host returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise TableProviderError(f"Table host timed out after {self._timeout}s") from e

        try:
            return Table.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise TableProviderError(f"Unexpected table format for {ref}: {e}") from e

    async def draw_row(self, table: Table) -> TableRow:
        return _draw_uniform(table, self._rng)

    async def list_rows(self, table: Table) -> list[TableRow]:
        return list(table.rows)


def provider_from_config(storage: Storage, config: dict[str, Any]) -> TableProvider:
    """Pick the table provider named by config["table_provider"]["kind"]."""
    settings = config.get("table_provider") or {}
    if settings.get("kind") == "http":
        return HttpTableProvider(
            base_url=str(settings.get("base_url") or ""),
            api_key=str(settings.get("api_key") or ""),
            timeout=float(settings.get("timeout") or 30),
        )
    return StorageTableProvider(storage)
