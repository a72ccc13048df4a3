"""
Supabase-backed grid store.

Uses the official Supabase Python client. Sections, parameters and text cells
live in three tables; the section's `display_config` JSON column holds the
per-row column counts. The client is synchronous, so each call runs in a
worker thread and the store stays awaitable like every other `GridStore`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

import anyio
from supabase import Client, create_client

from form_grid.errors import CellNotFoundError, SectionNotFoundError, StoreError
from form_grid.schemas.cells import Section

logger = logging.getLogger(__name__)

SECTIONS_TABLE = "form_parameter_categories"
PARAMETERS_TABLE = "form_parameters"
TEXT_CELLS_TABLE = "form_grid_cells"

_client: Optional[Client] = None


def get_supabase_client() -> Optional[Client]:
    """Get or create Supabase client (singleton)."""
    global _client

    if _client is not None:
        return _client

    url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    # Service role key has full access; the anon key is a fallback for local setups.
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")

    if not url or not key:
        return None

    try:
        _client = create_client(url, key)
        return _client
    except Exception as e:
        logger.warning("[Supabase] Failed to create client: %s", e)
        return None


class SupabaseGridStore:
    def __init__(self, client: Client) -> None:
        self.client = client

    async def _call(self, what: str, fn: Callable[[], Any]) -> Any:
        try:
            return await anyio.to_thread.run_sync(fn)
        except Exception as e:
            logger.warning("[Supabase] %s failed: %s", what, e)
            raise StoreError(f"{what} failed: {e}", details={"operation": what}) from e

    async def fetch_section(self, section_id: int) -> Section:
        def _fetch() -> Dict[str, Any]:
            section = (
                self.client.table(SECTIONS_TABLE).select("*").eq("id", section_id).limit(1).execute()
            )
            rows = section.data or []
            if not rows:
                return {}
            params = self.client.table(PARAMETERS_TABLE).select("*").eq("category", section_id).execute()
            cells = (
                self.client.table(TEXT_CELLS_TABLE)
                .select("*")
                .eq("category", section_id)
                .eq("is_active", True)
                .execute()
            )
            return {**rows[0], "form_parameters": params.data or [], "grid_cells": cells.data or []}

        record = await self._call(f"fetch section {section_id}", _fetch)
        if not record:
            raise SectionNotFoundError(f"Section {section_id} not found")
        return Section.model_validate(record)

    async def _update(self, table: str, row_id: int, values: Dict[str, Any], missing: Exception) -> None:
        result = await self._call(
            f"update {table} {row_id}",
            lambda: self.client.table(table).update(values).eq("id", row_id).execute(),
        )
        rows: List[Dict[str, Any]] = result.data or []
        if not rows:
            raise missing

    async def _delete(self, table: str, row_id: int, missing: Exception) -> None:
        result = await self._call(
            f"delete {table} {row_id}",
            lambda: self.client.table(table).delete().eq("id", row_id).execute(),
        )
        if not (result.data or []):
            raise missing

    async def update_display_config(self, section_id: int, display_config: Dict[str, Any]) -> None:
        await self._update(
            SECTIONS_TABLE,
            section_id,
            {"display_config": display_config},
            SectionNotFoundError(f"Section {section_id} not found"),
        )

    async def _insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._call(f"insert {table}", lambda: self.client.table(table).insert(values).execute())
        rows: List[Dict[str, Any]] = result.data or []
        if not rows:
            raise StoreError(f"insert {table} returned no row", details={"operation": f"insert {table}"})
        return rows[0]

    async def create_parameter(
        self,
        section_id: int,
        *,
        parameter_definition: int,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        is_required: bool = False,
        is_visible: bool = True,
    ) -> Dict[str, Any]:
        return await self._insert(
            PARAMETERS_TABLE,
            {
                "category": section_id,
                "parameter_definition": parameter_definition,
                "grid_row": grid_row,
                "grid_column": grid_column,
                "grid_span": grid_span,
                "is_required": is_required,
                "is_visible": is_visible,
            },
        )

    async def create_text_cell(
        self,
        section_id: int,
        *,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        content: str,
        style: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._insert(
            TEXT_CELLS_TABLE,
            {
                "category": section_id,
                "grid_row": grid_row,
                "grid_column": grid_column,
                "grid_span": grid_span,
                "content": content,
                "style": style,
                "is_active": True,
            },
        )

    async def update_parameter_position(
        self, parameter_id: int, *, grid_row: int, grid_column: int, grid_span: int
    ) -> None:
        await self._update(
            PARAMETERS_TABLE,
            parameter_id,
            {"grid_row": grid_row, "grid_column": grid_column, "grid_span": grid_span},
            CellNotFoundError(f"Parameter {parameter_id} not found"),
        )

    async def update_text_cell(
        self,
        cell_id: int,
        *,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        content: str,
        style: Optional[Dict[str, Any]] = None,
    ) -> None:
        values: Dict[str, Any] = {
            "grid_row": grid_row,
            "grid_column": grid_column,
            "grid_span": grid_span,
            "content": content,
        }
        if style is not None:
            values["style"] = style
        await self._update(TEXT_CELLS_TABLE, cell_id, values, CellNotFoundError(f"Text cell {cell_id} not found"))

    async def delete_parameter(self, parameter_id: int) -> None:
        await self._delete(PARAMETERS_TABLE, parameter_id, CellNotFoundError(f"Parameter {parameter_id} not found"))

    async def delete_text_cell(self, cell_id: int) -> None:
        await self._delete(TEXT_CELLS_TABLE, cell_id, CellNotFoundError(f"Text cell {cell_id} not found"))


def get_supabase_store() -> Optional[SupabaseGridStore]:
    client = get_supabase_client()
    if client is None:
        return None
    return SupabaseGridStore(client)
