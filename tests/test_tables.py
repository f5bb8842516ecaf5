"""Tests for rpg_chargen.tables — StorageTableProvider and HttpTableProvider."""

import random
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from rpg_chargen.models import Table
from rpg_chargen.tables import (
    HttpTableProvider,
    StorageTableProvider,
    TableNotFoundError,
    TableProviderError,
    provider_from_config,
    require_table,
)

from helpers import StubTables, label_table

TABLE_JSON = {"id": "regions", "name": "Regions", "rows": [{"id": "r1", "name": "the Salt Coast"}]}


# ---------------------------------------------------------------------------
# require_table
# ---------------------------------------------------------------------------

class TestRequireTable:
    async def test_found(self) -> None:
        table = label_table("regions", "North")
        assert await require_table(StubTables(table), " regions ") is table

    async def test_missing_raises_with_ref(self) -> None:
        with pytest.raises(TableNotFoundError, match="RollTable not found: nowhere"):
            await require_table(StubTables(), "nowhere")

    async def test_blank_ref_never_resolves(self) -> None:
        tables = StubTables()
        with pytest.raises(TableNotFoundError):
            await require_table(tables, "  ")
        assert tables.resolved == []


# ---------------------------------------------------------------------------
# StorageTableProvider
# ---------------------------------------------------------------------------

class TestStorageTableProvider:
    async def test_resolve_saved_table(self, storage) -> None:
        storage.save_table(Table.model_validate(TABLE_JSON))
        provider = StorageTableProvider(storage)
        table = await provider.resolve_table("regions")
        assert table is not None
        assert table.name == "Regions"
        assert await provider.resolve_table("missing") is None

    async def test_unreadable_stored_table_raises(self, storage) -> None:
        (storage.base_path / "tables" / "t.json").write_text("{bad")
        with pytest.raises(TableProviderError, match="Stored table t is unreadable"):
            await StorageTableProvider(storage).resolve_table("t")

    async def test_draw_row(self, storage) -> None:
        provider = StorageTableProvider(storage, rng=random.Random(0))
        table = label_table("t", "a", "b", "c")
        assert (await provider.draw_row(table)).name in {"a", "b", "c"}

    async def test_draw_from_empty_table_raises(self, storage) -> None:
        provider = StorageTableProvider(storage)
        with pytest.raises(TableProviderError, match="has no results"):
            await provider.draw_row(Table(id="e", name="Empty"))

    async def test_list_rows_is_a_copy(self, storage) -> None:
        table = label_table("t", "a", "b")
        rows = await StorageTableProvider(storage).list_rows(table)
        rows.pop()
        assert len(table.rows) == 2


# ---------------------------------------------------------------------------
# HttpTableProvider
# ---------------------------------------------------------------------------

def _mock_response(body, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


class TestHttpTableProvider:
    @pytest.fixture
    def provider(self) -> HttpTableProvider:
        return HttpTableProvider(base_url="http://host:30000/api/")

    async def test_happy_path(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response(TABLE_JSON))
        with patch("httpx.AsyncClient.get", mock_get):
            table = await provider.resolve_table("regions")
        assert table == Table.model_validate(TABLE_JSON)

    async def test_ref_is_url_quoted(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response(TABLE_JSON))
        with patch("httpx.AsyncClient.get", mock_get):
            await provider.resolve_table("RollTable.abc/def")
        assert mock_get.call_args[0][0] == "http://host:30000/api/tables/RollTable.abc%2Fdef"

    async def test_bearer_token_sent_when_api_key_set(self) -> None:
        provider = HttpTableProvider(base_url="http://host", api_key="secret")
        mock_get = AsyncMock(return_value=_mock_response(TABLE_JSON))
        with patch("httpx.AsyncClient.get", mock_get):
            await provider.resolve_table("regions")
        assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"

    async def test_no_auth_header_without_api_key(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response(TABLE_JSON))
        with patch("httpx.AsyncClient.get", mock_get):
            await provider.resolve_table("regions")
        assert "Authorization" not in mock_get.call_args.kwargs["headers"]

    async def test_404_is_not_found(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response({}, status=404))
        with patch("httpx.AsyncClient.get", mock_get):
            assert await provider.resolve_table("missing") is None

    async def test_http_error_raises(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response({}, status=500))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(TableProviderError, match="HTTP 500"):
                await provider.resolve_table("regions")

    async def test_connect_error_raises(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(TableProviderError, match="Cannot connect"):
                await provider.resolve_table("regions")

    async def test_timeout_raises(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(TableProviderError, match="timed out"):
                await provider.resolve_table("regions")

    async def test_bad_body_raises(self, provider: HttpTableProvider) -> None:
        mock_get = AsyncMock(return_value=_mock_response({"rows": "nope"}))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(TableProviderError, match="Unexpected table format"):
                await provider.resolve_table("regions")


class TestProviderFromConfig:
    def test_default_is_storage(self, storage) -> None:
        assert isinstance(provider_from_config(storage, {}), StorageTableProvider)

    def test_http(self, storage) -> None:
        provider = provider_from_config(storage, {
            "table_provider": {"kind": "http", "base_url": "http://host", "api_key": "k", "timeout": 5},
        })
        assert isinstance(provider, HttpTableProvider)
