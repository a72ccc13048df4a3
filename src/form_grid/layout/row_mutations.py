"""
Row insert/delete for section grids.

Each operation is a plan of persistence calls awaited strictly one after the
other. Nothing is rolled back: if a call fails, every earlier call is already
durable and the error carries both the completed steps and the one that
failed, so the caller can re-fetch and retry or repair the section by hand.

Ordering per operation:

- insert before/after: layout config first, then parameter moves, then text
  cell moves (a cell never claims a column its row has not declared yet).
- delete: delete the row's cells, move the cells below it up, then persist
  the shrunken layout config.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Tuple

from form_grid.errors import ColumnCountError, GridLayoutError, PartialMutationError
from form_grid.layout.grid_builder import build_grid
from form_grid.schemas.cells import (
    DEFAULT_NEW_ROW_COLUMNS,
    MAX_COLUMNS_PER_ROW,
    ParameterCell,
    PresentationMode,
    Section,
    TextCell,
)
from form_grid.store.base import GridStore

logger = logging.getLogger(__name__)

Step = Tuple[Dict[str, Any], Callable[[], Awaitable[None]]]


@dataclass
class RowMutationResult:
    operation: str
    row: int
    rows_columns: Dict[int, int]
    steps: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "row": self.row,
            "rowsColumns": {str(r): c for r, c in sorted(self.rows_columns.items())},
            "steps": self.steps,
        }


def plan_insert(rows_columns: Mapping[int, int], target: int, *, after: bool) -> Dict[int, int]:
    """Shift configured rows to open a new row before (or after) `target`; the new row gets the default width."""
    new_row = target + 1 if after else target
    out: Dict[int, int] = {}
    for row, columns in rows_columns.items():
        out[row + 1 if row >= new_row else row] = columns
    out[new_row] = DEFAULT_NEW_ROW_COLUMNS
    return out


def plan_delete(rows_columns: Mapping[int, int], target: int) -> Dict[int, int]:
    out: Dict[int, int] = {}
    for row, columns in rows_columns.items():
        if row < target:
            out[row] = columns
        elif row > target:
            out[row - 1] = columns
    return out


class RowMutationEngine:
    """Applies row-level structural edits to a section through a `GridStore`."""

    def __init__(self, store: GridStore) -> None:
        self.store = store

    async def _run(self, operation: str, section: Section, steps: List[Step]) -> List[Dict[str, Any]]:
        completed: List[Dict[str, Any]] = []
        for description, call in steps:
            try:
                await call()
            except Exception as exc:
                logger.warning(
                    "row mutation failed: section=%s op=%s step=%s completed=%d err=%r",
                    section.id,
                    operation,
                    description,
                    len(completed),
                    exc,
                )
                raise PartialMutationError(
                    f"{operation} on section {section.id} failed after {len(completed)} of {len(steps)} steps",
                    operation=operation,
                    completed=completed,
                    failed_step=description,
                    cause=exc,
                ) from exc
            completed.append(description)
            logger.info("row mutation: section=%s op=%s step=%s", section.id, operation, description)
        return completed

    def _config_step(self, section: Section, rows_columns: Mapping[int, int]) -> Step:
        payload = section.display_config_with(rows_columns)
        description = {"step": "update_display_config", "rowsColumns": payload["grid_config"]["rows_columns"]}
        return description, lambda: self.store.update_display_config(section.id, payload)

    def _move_parameter_step(self, param: ParameterCell, new_row: int) -> Step:
        description = {"step": "move_parameter", "id": param.id, "fromRow": param.grid_row, "toRow": new_row}
        return description, lambda: self.store.update_parameter_position(
            param.id, grid_row=new_row, grid_column=param.grid_column, grid_span=param.grid_span
        )

    def _move_text_cell_step(self, cell: TextCell, new_row: int) -> Step:
        description = {"step": "move_text_cell", "id": cell.id, "fromRow": cell.grid_row, "toRow": new_row}
        return description, lambda: self.store.update_text_cell(
            cell.id,
            grid_row=new_row,
            grid_column=cell.grid_column,
            grid_span=cell.grid_span,
            content=cell.content,
            style=cell.style,
        )

    def _require_row(self, section: Section, row: int) -> None:
        row_count = build_grid(section, mode=PresentationMode.ADMIN).row_count
        if row < 1 or row > row_count:
            raise GridLayoutError(
                f"Row {row} does not exist in section {section.id}",
                details={"row": row, "rowCount": row_count},
            )

    async def _insert(self, section_id: int, row: int, *, after: bool) -> RowMutationResult:
        operation = "insert_row_after" if after else "insert_row_before"
        section = await self.store.fetch_section(section_id)
        self._require_row(section, row)

        rows_columns = plan_insert(section.rows_columns(), row, after=after)
        first_moved = row + 1 if after else row

        steps: List[Step] = [self._config_step(section, rows_columns)]
        for param in section.form_parameters:
            if param.grid_row >= first_moved:
                steps.append(self._move_parameter_step(param, param.grid_row + 1))
        for cell in section.grid_cells:
            if cell.grid_row >= first_moved:
                steps.append(self._move_text_cell_step(cell, cell.grid_row + 1))

        completed = await self._run(operation, section, steps)
        return RowMutationResult(operation=operation, row=row, rows_columns=rows_columns, steps=completed)

    async def insert_row_before(self, section_id: int, row: int) -> RowMutationResult:
        return await self._insert(section_id, row, after=False)

    async def insert_row_after(self, section_id: int, row: int) -> RowMutationResult:
        return await self._insert(section_id, row, after=True)

    async def delete_row(self, section_id: int, row: int) -> RowMutationResult:
        """
        Delete row `row` and every cell in it, then close the gap.

        There is no emptiness guard; confirming intent is the caller's job.
        """
        section = await self.store.fetch_section(section_id)
        self._require_row(section, row)
        rows_columns = plan_delete(section.rows_columns(), row)

        steps: List[Step] = []
        for param in section.form_parameters:
            if param.grid_row == row:
                steps.append(
                    ({"step": "delete_parameter", "id": param.id}, lambda p=param: self.store.delete_parameter(p.id))
                )
        for cell in section.grid_cells:
            if cell.grid_row == row:
                steps.append(
                    ({"step": "delete_text_cell", "id": cell.id}, lambda c=cell: self.store.delete_text_cell(c.id))
                )
        for param in section.form_parameters:
            if param.grid_row > row:
                steps.append(self._move_parameter_step(param, param.grid_row - 1))
        for cell in section.grid_cells:
            if cell.grid_row > row:
                steps.append(self._move_text_cell_step(cell, cell.grid_row - 1))
        steps.append(self._config_step(section, rows_columns))

        completed = await self._run("delete_row", section, steps)
        return RowMutationResult(operation="delete_row", row=row, rows_columns=rows_columns, steps=completed)

    async def apply_column_count(self, section_id: int, row: int, columns: int) -> RowMutationResult:
        section = await self.store.fetch_section(section_id)
        self._require_row(section, row)
        if columns < 1 or columns > MAX_COLUMNS_PER_ROW:
            raise ColumnCountError(
                f"Column count must be between 1 and {MAX_COLUMNS_PER_ROW}",
                details={"row": row, "columns": columns},
            )
        extent = build_grid(section, mode=PresentationMode.ADMIN).occupied_extent(row)
        if columns < extent:
            raise ColumnCountError(
                f"Row {row} has cells up to column {extent}; cannot shrink it to {columns}",
                details={"row": row, "columns": columns, "occupiedExtent": extent},
            )
        rows_columns = dict(section.rows_columns())
        rows_columns[row] = columns
        completed = await self._run("apply_column_count", section, [self._config_step(section, rows_columns)])
        return RowMutationResult(operation="apply_column_count", row=row, rows_columns=rows_columns, steps=completed)

    async def initialize_first_row(self, section_id: int) -> RowMutationResult:
        section = await self.store.fetch_section(section_id)
        if build_grid(section, mode=PresentationMode.ADMIN).row_count > 0:
            raise GridLayoutError(f"Section {section_id} already has rows", details={"sectionId": section_id})
        rows_columns = {1: DEFAULT_NEW_ROW_COLUMNS}
        completed = await self._run("initialize_first_row", section, [self._config_step(section, rows_columns)])
        return RowMutationResult(operation="initialize_first_row", row=1, rows_columns=rows_columns, steps=completed)

