from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple

from form_grid.errors import DragDisabledError, InvalidDragError
from form_grid.layout.grid_builder import SLOT_CELL, SLOT_EMPTY, GridModel
from form_grid.schemas.cells import Cell, PresentationMode, is_parameter_cell

logger = logging.getLogger(__name__)

_EMPTY_SLOT_RE = re.compile(r"^empty-(\d+)-(\d+)$")


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class PositionCommitter(Protocol):
    async def move_parameter(self, parameter_id: int, *, row: int, column: int, span: int) -> None: ...

    async def move_text_cell(
        self,
        cell_id: int,
        *,
        row: int,
        column: int,
        span: int,
        content: str,
        style: Optional[Dict[str, Any]],
    ) -> None: ...


@dataclass(frozen=True)
class DropOutcome:
    committed: bool
    reason: str
    cell_id: Optional[str] = None
    row: Optional[int] = None
    column: Optional[int] = None
    span: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "committed": self.committed,
            "reason": self.reason,
            "cellId": self.cell_id,
            "row": self.row,
            "column": self.column,
            "span": self.span,
        }


class ReorderController:
    """
    Drag-and-drop state machine over the placed cells of one grid.

    idle -> dragging(active) on `pick_up`, back to idle on `drop` or `cancel`.
    Only a valid drop persists anything, and only the dragged cell's
    (row, column, span) with the span unchanged. The grid is never patched
    locally: after a commit (or a failed commit) the caller rebuilds it from a
    fresh read.
    """

    def __init__(
        self,
        grid: GridModel,
        committer: PositionCommitter,
        mode: Optional[PresentationMode] = None,
    ) -> None:
        self.grid = grid
        self.committer = committer
        self.mode = PresentationMode(mode) if mode is not None else grid.mode
        self.state = DragState.IDLE
        self.active_id: Optional[str] = None
        self.candidate_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.mode == PresentationMode.ADMIN

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.active_id = None
        self.candidate_id = None

    def pick_up(self, sort_id: str) -> Cell:
        if not self.enabled:
            raise DragDisabledError(f"Drag and drop is disabled in {self.mode.value} mode")
        if self.state == DragState.DRAGGING:
            raise InvalidDragError(f"Already dragging {self.active_id}", details={"activeId": self.active_id})
        cell = self.grid.find_cell(sort_id)
        if cell is None:
            raise InvalidDragError(f"Unknown cell {sort_id}", details={"activeId": sort_id})
        self.state = DragState.DRAGGING
        self.active_id = sort_id
        self.candidate_id = None
        return cell

    def hover(self, target_id: Optional[str]) -> bool:
        """Track the slot under the pointer; returns whether dropping there would commit."""
        if self.state != DragState.DRAGGING:
            return False
        self.candidate_id = target_id
        return self._check(target_id)[0] == "ok"

    def cancel(self) -> None:
        self._reset()

    def _resolve(self, target_id: str) -> Optional[Tuple[int, int]]:
        match = _EMPTY_SLOT_RE.match(target_id)
        if match:
            return int(match.group(1)), int(match.group(2))
        if target_id == self.active_id:
            cell = self.grid.find_cell(target_id)
            if cell is not None:
                return cell.grid_row, cell.grid_column
        # Another cell's anchor: landing on it would stack two cells on one coordinate.
        return None

    def _check(self, target_id: Optional[str]) -> Tuple[str, Optional[Tuple[int, int]]]:
        if not target_id or self.active_id is None:
            return "no_target", None
        cell = self.grid.find_cell(self.active_id)
        if cell is None:
            return "unknown_cell", None
        position = self._resolve(target_id)
        if position is None:
            return "occupied", None
        row, column = position
        if (row, column) == (cell.grid_row, cell.grid_column):
            return "same_slot", position
        slot = self.grid.slot(row, column)
        if slot is None:
            return "out_of_bounds", position
        if slot.kind == SLOT_CELL or (slot.kind != SLOT_EMPTY and slot.anchor_id != self.active_id):
            return "occupied", position
        if not self.grid.footprint_is_free(row, column, cell.grid_span, ignore=self.active_id):
            return "no_room", position
        return "ok", position

    async def drop(self, target_id: Optional[str] = None) -> DropOutcome:
        """
        Finish the gesture over `target_id` (or the last hovered slot).

        Invalid targets are a silent no-op. A failing commit propagates after the
        controller has already returned to idle.
        """
        if self.state != DragState.DRAGGING or self.active_id is None:
            raise InvalidDragError("No drag in progress")
        active_id = self.active_id
        target = target_id if target_id is not None else self.candidate_id
        try:
            reason, position = self._check(target)
            cell = self.grid.find_cell(active_id)
            if reason != "ok" or position is None or cell is None:
                logger.info("reorder: drop ignored active=%s target=%s reason=%s", active_id, target, reason)
                return DropOutcome(committed=False, reason=reason, cell_id=active_id)
            row, column = position
            span = cell.grid_span
            if is_parameter_cell(cell):
                await self.committer.move_parameter(cell.id, row=row, column=column, span=span)
            else:
                await self.committer.move_text_cell(
                    cell.id,
                    row=row,
                    column=column,
                    span=span,
                    content=getattr(cell, "content", ""),
                    style=getattr(cell, "style", None),
                )
            logger.info("reorder: moved %s to (%s,%s) span=%s", active_id, row, column, span)
            return DropOutcome(committed=True, reason="ok", cell_id=active_id, row=row, column=column, span=span)
        finally:
            self._reset()
