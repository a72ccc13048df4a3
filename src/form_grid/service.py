"""
Section-level facade over the layout engine.

Reads go through a small TTL cache keyed by section id. Every mutation, even
one that fails part way, drops that cache entry so the next read rebuilds the
grid from the store instead of from what the service thinks it just wrote.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple, Union

from form_grid.errors import CellNotFoundError, CellPlacementError, DuplicateParameterError
from form_grid.layout.grid_builder import GridModel, build_grid
from form_grid.layout.reorder import DropOutcome, ReorderController
from form_grid.layout.row_mutations import RowMutationEngine, RowMutationResult
from form_grid.schemas.cells import (
    ParameterCell,
    PresentationMode,
    Section,
    TextCell,
    cell_sort_id,
    is_parameter_cell,
)
from form_grid.store.base import GridStore

logger = logging.getLogger(__name__)


def _definition_id(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("id")
    return value


class _StoreCommitter:
    def __init__(self, store: GridStore) -> None:
        self.store = store

    async def move_parameter(self, parameter_id: int, *, row: int, column: int, span: int) -> None:
        await self.store.update_parameter_position(parameter_id, grid_row=row, grid_column=column, grid_span=span)

    async def move_text_cell(
        self,
        cell_id: int,
        *,
        row: int,
        column: int,
        span: int,
        content: str,
        style: Optional[Dict[str, Any]],
    ) -> None:
        await self.store.update_text_cell(
            cell_id, grid_row=row, grid_column=column, grid_span=span, content=content, style=style
        )


class SectionGridService:
    def __init__(self, store: GridStore, *, cache_ttl_sec: int = 30) -> None:
        self.store = store
        self.cache_ttl_sec = max(0, min(3600, int(cache_ttl_sec or 0)))
        self.engine = RowMutationEngine(store)
        self._cache: Dict[int, Tuple[float, Section]] = {}

    # -- reads ---------------------------------------------------------------

    def invalidate(self, section_id: int) -> None:
        self._cache.pop(int(section_id), None)

    async def get_section(self, section_id: int, *, fresh: bool = False) -> Section:
        key = int(section_id)
        if not fresh and self.cache_ttl_sec > 0:
            rec = self._cache.get(key)
            if rec is not None:
                expires_at, section = rec
                if time.time() < expires_at:
                    return section
                self._cache.pop(key, None)
        logger.debug("section cache miss id=%s fresh=%s", key, fresh)
        section = await self.store.fetch_section(key)
        if self.cache_ttl_sec > 0:
            self._cache[key] = (time.time() + self.cache_ttl_sec, section)
        return section

    async def get_grid(
        self, section_id: int, mode: Union[PresentationMode, str] = PresentationMode.ADMIN, *, fresh: bool = False
    ) -> GridModel:
        section = await self.get_section(section_id, fresh=fresh)
        return build_grid(section, mode=mode)

    # -- row operations --------------------------------------------------------

    async def apply_column_count(self, section_id: int, row: int, columns: int) -> RowMutationResult:
        try:
            return await self.engine.apply_column_count(section_id, row, columns)
        finally:
            self.invalidate(section_id)

    async def insert_row_before(self, section_id: int, row: int) -> RowMutationResult:
        try:
            return await self.engine.insert_row_before(section_id, row)
        finally:
            self.invalidate(section_id)

    async def insert_row_after(self, section_id: int, row: int) -> RowMutationResult:
        try:
            return await self.engine.insert_row_after(section_id, row)
        finally:
            self.invalidate(section_id)

    async def delete_row(self, section_id: int, row: int) -> RowMutationResult:
        try:
            return await self.engine.delete_row(section_id, row)
        finally:
            self.invalidate(section_id)

    async def initialize_first_row(self, section_id: int) -> RowMutationResult:
        try:
            return await self.engine.initialize_first_row(section_id)
        finally:
            self.invalidate(section_id)

    # -- cell operations -----------------------------------------------------

    @staticmethod
    def _check_placement(grid: GridModel, sort_id: Optional[str], row: int, column: int, span: int) -> None:
        details = {"id": sort_id or "new", "row": row, "column": column, "span": span}
        if row < 1 or row > grid.row_count:
            raise CellPlacementError(f"Row {row} does not exist", details={**details, "rowCount": grid.row_count})
        width = grid.columns_of(row)
        if column < 1 or column + span - 1 > width:
            raise CellPlacementError(
                f"Cell does not fit in row {row} ({width} columns)", details={**details, "columns": width}
            )
        if not grid.footprint_is_free(row, column, span, ignore=sort_id):
            raise CellPlacementError(f"Position ({row},{column}) overlaps another cell", details=details)

    async def _fresh_cell(self, section_id: int, sort_id: str) -> Tuple[GridModel, Any]:
        grid = await self.get_grid(section_id, PresentationMode.ADMIN, fresh=True)
        cell = grid.find_cell(sort_id)
        if cell is None:
            raise CellNotFoundError(f"{sort_id} not found in section {section_id}", details={"id": sort_id})
        return grid, cell

    async def move_parameter(
        self, section_id: int, parameter_id: int, *, row: int, column: int, span: Optional[int] = None
    ) -> ParameterCell:
        sort_id = f"cell-param-{parameter_id}"
        try:
            grid, param = await self._fresh_cell(section_id, sort_id)
            span = span or param.grid_span
            self._check_placement(grid, sort_id, row, column, span)
            await self.store.update_parameter_position(parameter_id, grid_row=row, grid_column=column, grid_span=span)
            return param.model_copy(update={"grid_row": row, "grid_column": column, "grid_span": span})
        finally:
            self.invalidate(section_id)

    async def move_text_cell(
        self,
        section_id: int,
        cell_id: int,
        *,
        row: Optional[int] = None,
        column: Optional[int] = None,
        span: Optional[int] = None,
        content: Optional[str] = None,
        style: Optional[Dict[str, Any]] = None,
    ) -> TextCell:
        """Move and/or edit a text cell. The update always carries the full content/style payload."""
        sort_id = f"cell-text-{cell_id}"
        try:
            grid, cell = await self._fresh_cell(section_id, sort_id)
            row = row or cell.grid_row
            column = column or cell.grid_column
            span = span or cell.grid_span
            if (row, column, span) != (cell.grid_row, cell.grid_column, cell.grid_span):
                self._check_placement(grid, sort_id, row, column, span)
            content = content if content is not None else cell.content
            style = style if style is not None else cell.style
            await self.store.update_text_cell(
                cell_id, grid_row=row, grid_column=column, grid_span=span, content=content, style=style
            )
            return cell.model_copy(
                update={"grid_row": row, "grid_column": column, "grid_span": span, "content": content, "style": style}
            )
        finally:
            self.invalidate(section_id)

    async def create_parameter(
        self,
        section_id: int,
        parameter_definition: int,
        *,
        row: int,
        column: int,
        span: int = 1,
        is_required: bool = False,
        is_visible: bool = True,
    ) -> ParameterCell:
        """Add a parameter definition to the section at an empty slot. A definition appears once per section."""
        try:
            grid = await self.get_grid(section_id, PresentationMode.ADMIN, fresh=True)
            for cell in grid.cells:
                if is_parameter_cell(cell) and _definition_id(cell.parameter_definition) == parameter_definition:
                    raise DuplicateParameterError(
                        f"Parameter definition {parameter_definition} is already in section {section_id}",
                        details={"parameterDefinition": parameter_definition, "id": cell_sort_id(cell)},
                    )
            self._check_placement(grid, None, row, column, span)
            record = await self.store.create_parameter(
                section_id,
                parameter_definition=parameter_definition,
                grid_row=row,
                grid_column=column,
                grid_span=span,
                is_required=is_required,
                is_visible=is_visible,
            )
            logger.info("section=%s created parameter id=%s at (%s,%s)", section_id, record.get("id"), row, column)
            return ParameterCell.model_validate(record)
        finally:
            self.invalidate(section_id)

    async def create_text_cell(
        self,
        section_id: int,
        *,
        row: int,
        column: int,
        span: int = 1,
        content: str = "",
        style: Optional[Dict[str, Any]] = None,
    ) -> TextCell:
        try:
            grid = await self.get_grid(section_id, PresentationMode.ADMIN, fresh=True)
            self._check_placement(grid, None, row, column, span)
            record = await self.store.create_text_cell(
                section_id, grid_row=row, grid_column=column, grid_span=span, content=content, style=style
            )
            logger.info("section=%s created text cell id=%s at (%s,%s)", section_id, record.get("id"), row, column)
            return TextCell.model_validate(record)
        finally:
            self.invalidate(section_id)

    async def _require_member(self, section_id: int, sort_id: str) -> None:
        # Records that failed validation can still be deleted.
        grid = await self.get_grid(section_id, PresentationMode.ADMIN, fresh=True)
        if grid.find_cell(sort_id) is None and grid.find_orphan(sort_id) is None:
            raise CellNotFoundError(f"{sort_id} not found in section {section_id}", details={"id": sort_id})

    async def delete_parameter(self, section_id: int, parameter_id: int) -> None:
        try:
            await self._require_member(section_id, f"cell-param-{parameter_id}")
            await self.store.delete_parameter(parameter_id)
        finally:
            self.invalidate(section_id)

    async def delete_text_cell(self, section_id: int, cell_id: int) -> None:
        try:
            await self._require_member(section_id, f"cell-text-{cell_id}")
            await self.store.delete_text_cell(cell_id)
        finally:
            self.invalidate(section_id)

    async def reorder(self, section_id: int, active_id: str, over_id: Optional[str]) -> DropOutcome:
        """Run one complete drag gesture (pick up `active_id`, drop over `over_id`) against fresh state."""
        try:
            grid = await self.get_grid(section_id, PresentationMode.ADMIN, fresh=True)
            controller = ReorderController(grid, _StoreCommitter(self.store))
            controller.pick_up(active_id)
            controller.hover(over_id)
            return await controller.drop()
        finally:
            self.invalidate(section_id)


__all__ = ["SectionGridService"]
