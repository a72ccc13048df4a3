"""
Dense grid reconstruction for a section.

Cells are stored sparsely: every parameter and text cell carries its own
(row, column, span). `build_grid` turns that into a row -> column -> slot
mapping that the admin editor, the fill-in forms and the read-only view all
render from. It is a pure function of its inputs and never raises on stale
data: cells that fall outside the current bounds are reported as orphans and
left out of the grid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from form_grid.schemas.cells import (
    MAX_COLUMNS_PER_ROW,
    Cell,
    PresentationMode,
    RejectedCell,
    Section,
    TextCell,
    cell_sort_id,
    empty_slot_id,
    is_parameter_cell,
)

logger = logging.getLogger(__name__)

SLOT_CELL = "cell"
SLOT_OCCUPIED = "occupied"
SLOT_EMPTY = "empty"


@dataclass(frozen=True)
class GridSlot:
    row: int
    column: int
    kind: str = SLOT_EMPTY
    cell: Optional[Cell] = None
    # Sort id of the cell anchoring this slot (set for `cell` and `occupied` slots).
    anchor_id: Optional[str] = None

    @property
    def slot_id(self) -> str:
        if self.kind == SLOT_CELL and self.anchor_id:
            return self.anchor_id
        return empty_slot_id(self.row, self.column)


@dataclass(frozen=True)
class Orphan:
    cell: Union[Cell, RejectedCell]
    reason: str

    @property
    def sort_id(self) -> str:
        if isinstance(self.cell, RejectedCell):
            return self.cell.sort_id
        return cell_sort_id(self.cell)


def _position(cell: Cell) -> tuple[int, int, int]:
    return int(cell.grid_row or 1), int(cell.grid_column or 1), int(cell.grid_span or 1)


def columns_for_row(rows_columns: Mapping[int, int], cells: Iterable[Cell], row: int) -> int:
    """
    Column count of `row`.

    The configured count wins when present. Otherwise the widest extent of the
    cells placed in the row, clamped to [1, MAX_COLUMNS_PER_ROW].
    """
    configured = rows_columns.get(row)
    if configured:
        return int(configured)
    widest = 1
    for cell in cells:
        r, c, s = _position(cell)
        if r == row and c + s - 1 > widest:
            widest = c + s - 1
    return min(max(widest, 1), MAX_COLUMNS_PER_ROW)


def row_count_for(rows_columns: Mapping[int, int], cells: Sequence[Cell]) -> int:
    if not cells and not rows_columns:
        return 0
    highest = 1
    for row in rows_columns:
        highest = max(highest, row)
    for cell in cells:
        highest = max(highest, _position(cell)[0])
    return highest


@dataclass
class GridModel:
    mode: PresentationMode
    row_count: int
    rows_columns: Dict[int, int]
    grid: Dict[int, Dict[int, GridSlot]]
    cells: List[Cell] = field(default_factory=list)
    orphans: List[Orphan] = field(default_factory=list)

    @property
    def show_empty_state(self) -> bool:
        """True when the admin editor should offer to create the first row."""
        return self.mode == PresentationMode.ADMIN and self.row_count == 0

    def columns_of(self, row: int) -> int:
        return columns_for_row(self.rows_columns, self.cells, row)

    def slot(self, row: int, column: int) -> Optional[GridSlot]:
        return self.grid.get(row, {}).get(column)

    def find_cell(self, sort_id: str) -> Optional[Cell]:
        for cell in self.cells:
            if cell_sort_id(cell) == sort_id:
                return cell
        return None

    def find_orphan(self, sort_id: str) -> Optional[Orphan]:
        for orphan in self.orphans:
            if orphan.sort_id == sort_id:
                return orphan
        return None

    def anchor_of(self, row: int, column: int) -> Optional[Cell]:
        """The cell covering (row, column), following span tombstones back to their anchor."""
        slot = self.slot(row, column)
        if slot is None or slot.anchor_id is None:
            return None
        return self.find_cell(slot.anchor_id)

    def cells_in_row(self, row: int) -> List[Cell]:
        return [cell for cell in self.cells if _position(cell)[0] == row]

    def occupied_extent(self, row: int) -> int:
        """Rightmost column covered by any cell anchored in `row` (0 when the row has no cells)."""
        extent = 0
        for cell in self.cells_in_row(row):
            _, c, s = _position(cell)
            extent = max(extent, c + s - 1)
        return extent

    def footprint_is_free(self, row: int, column: int, span: int, *, ignore: Optional[str] = None) -> bool:
        """
        Whether a cell of `span` anchored at (row, column) fits the current grid.

        Every covered slot must exist (inside the row width) and be empty or
        belong to the cell identified by `ignore`.
        """
        if row < 1 or column < 1 or span < 1 or row > self.row_count:
            return False
        if column + span - 1 > self.columns_of(row):
            return False
        for c in range(column, column + span):
            slot = self.slot(row, c)
            if slot is None:
                return False
            if slot.kind == SLOT_EMPTY:
                continue
            if ignore is None or slot.anchor_id != ignore:
                return False
        return True

    def rows_to_render(self) -> List[int]:
        """Rows to draw. The read-only view hides rows that hold no cell."""
        rows = list(range(1, self.row_count + 1))
        if self.mode != PresentationMode.VIEW:
            return rows
        return [r for r in rows if any(s.kind == SLOT_CELL for s in self.grid.get(r, {}).values())]

    def to_dict(self) -> Dict[str, Any]:
        rows: List[Dict[str, Any]] = []
        for r in self.rows_to_render():
            slots: List[Dict[str, Any]] = []
            for c, slot in sorted(self.grid.get(r, {}).items()):
                item: Dict[str, Any] = {"column": c, "kind": slot.kind, "id": slot.slot_id}
                if slot.kind == SLOT_CELL and slot.cell is not None:
                    item["isParameter"] = is_parameter_cell(slot.cell)
                    item["span"] = _position(slot.cell)[2]
                    item["cell"] = slot.cell.model_dump(mode="json")
                elif slot.kind == SLOT_OCCUPIED:
                    item["anchorId"] = slot.anchor_id
                slots.append(item)
            rows.append({"row": r, "columns": self.columns_of(r), "slots": slots})
        return {
            "mode": self.mode.value,
            "rowCount": self.row_count,
            "showEmptyState": self.show_empty_state,
            "rows": rows,
            "orphans": [
                {"id": o.sort_id, "reason": o.reason} for o in self.orphans
            ],
        }


def _place(
    grid: Dict[int, Dict[int, GridSlot]],
    cell: Cell,
    row: int,
    column: int,
    span: int,
    width: int,
) -> None:
    sort_id = cell_sort_id(cell)
    grid[row][column] = GridSlot(row=row, column=column, kind=SLOT_CELL, cell=cell, anchor_id=sort_id)
    for c in range(column + 1, min(column + span - 1, width) + 1):
        grid[row][c] = GridSlot(row=row, column=c, kind=SLOT_OCCUPIED, anchor_id=sort_id)


def _clear(grid_row: Dict[int, GridSlot], anchor_id: str) -> None:
    for c, slot in grid_row.items():
        if slot.anchor_id == anchor_id:
            grid_row[c] = GridSlot(row=slot.row, column=c)


def build_grid(
    section: Section,
    cells: Optional[Sequence[TextCell]] = None,
    mode: Union[PresentationMode, str] = PresentationMode.ADMIN,
) -> GridModel:
    """
    Build the dense grid of `section`.

    `cells` is the authoritative text cell list when the caller has a fresher
    copy than `section.grid_cells`. Parameters are placed first and text cells
    second; a text cell whose footprint covers another cell's anchor replaces
    it, and the replaced cell is reported as a `collision` orphan. Records that
    failed validation are reported as `invalid` orphans.
    """
    mode = PresentationMode(mode)
    parameters = list(section.form_parameters or [])
    text_cells = list(cells if cells is not None else (section.grid_cells or []))
    all_cells: List[Cell] = [*parameters, *text_cells]
    rows_columns = section.rows_columns()

    row_count = row_count_for(rows_columns, all_cells)
    widths = {r: columns_for_row(rows_columns, all_cells, r) for r in range(1, row_count + 1)}

    grid: Dict[int, Dict[int, GridSlot]] = {
        r: {c: GridSlot(row=r, column=c) for c in range(1, widths[r] + 1)} for r in range(1, row_count + 1)
    }
    orphans: List[Orphan] = []
    for rejected in section.rejected_cells:
        orphans.append(Orphan(cell=rejected, reason="invalid"))
        logger.warning("grid: section=%s skipping invalid %s: %s", section.id, rejected.sort_id, rejected.error)

    placed: Dict[str, Cell] = {}
    for cell in all_cells:
        row, column, span = _position(cell)
        if row > row_count or column > widths.get(row, 0):
            orphans.append(Orphan(cell=cell, reason="out_of_bounds"))
            logger.debug("grid: section=%s dropping stale %s at (%s,%s)", section.id, cell_sort_id(cell), row, column)
            continue
        current = grid[row][column]
        if is_parameter_cell(cell) and current.kind != SLOT_EMPTY:
            # Parameters only take free slots or another parameter's anchor.
            if not (current.kind == SLOT_CELL and current.cell is not None and is_parameter_cell(current.cell)):
                orphans.append(Orphan(cell=cell, reason="collision"))
                continue
        sort_id = cell_sort_id(cell)
        for c in range(column, min(column + span - 1, widths[row]) + 1):
            # Whatever the new footprint covers loses its anchor and its tail.
            other = grid[row][c].anchor_id
            if other is None or other == sort_id or other not in placed:
                continue
            _clear(grid[row], other)
            orphans.append(Orphan(cell=placed.pop(other), reason="collision"))
            logger.debug("grid: section=%s %s replaced by %s at (%s,%s)", section.id, other, sort_id, row, c)
        _place(grid, cell, row, column, span, widths[row])
        placed[sort_id] = cell

    return GridModel(
        mode=mode,
        row_count=row_count,
        rows_columns=rows_columns,
        grid=grid,
        cells=all_cells,
        orphans=orphans,
    )
