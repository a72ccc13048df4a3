from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from form_grid.schemas.cells import Section


class GridStore(Protocol):
    """
    Persistence boundary for section grids.

    Implementations raise `StoreError` for any backend failure and
    `SectionNotFoundError` / `CellNotFoundError` for missing records.
    """

    async def fetch_section(self, section_id: int) -> Section: ...

    async def update_display_config(self, section_id: int, display_config: Dict[str, Any]) -> None: ...

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
        """Insert a parameter cell and return the stored record (with its new id)."""
        ...

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
        """Insert an active text cell and return the stored record (with its new id)."""
        ...

    async def update_parameter_position(
        self, parameter_id: int, *, grid_row: int, grid_column: int, grid_span: int
    ) -> None: ...

    async def update_text_cell(
        self,
        cell_id: int,
        *,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        content: str,
        style: Optional[Dict[str, Any]] = None,
    ) -> None: ...

    async def delete_parameter(self, parameter_id: int) -> None: ...

    async def delete_text_cell(self, cell_id: int) -> None: ...
