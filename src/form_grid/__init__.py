"""
Internal library package for form-grid-service.

This package holds the layout engine for section grids (grid building, row
mutations, drag-and-drop reorder), the cell schemas and the persistence
protocol.

- Runtime package: `src/form_grid/`
- HTTP entrypoint: `api/main.py`
"""

from form_grid.errors import (
    CellNotFoundError,
    CellPlacementError,
    ColumnCountError,
    DuplicateParameterError,
    DragDisabledError,
    FormGridError,
    GridLayoutError,
    InvalidDragError,
    PartialMutationError,
    SectionNotFoundError,
    StoreError,
)
from form_grid.layout.grid_builder import GridModel, GridSlot, build_grid
from form_grid.layout.reorder import DragState, DropOutcome, ReorderController
from form_grid.layout.row_mutations import RowMutationEngine, RowMutationResult
from form_grid.schemas.cells import (
    ParameterCell,
    PresentationMode,
    Section,
    TextCell,
    is_parameter_cell,
)
from form_grid.service import SectionGridService

__all__ = [
    "CellNotFoundError",
    "CellPlacementError",
    "ColumnCountError",
    "DuplicateParameterError",
    "DragDisabledError",
    "DragState",
    "DropOutcome",
    "FormGridError",
    "GridLayoutError",
    "GridModel",
    "GridSlot",
    "InvalidDragError",
    "ParameterCell",
    "PartialMutationError",
    "PresentationMode",
    "ReorderController",
    "RowMutationEngine",
    "RowMutationResult",
    "Section",
    "SectionGridService",
    "SectionNotFoundError",
    "StoreError",
    "TextCell",
    "build_grid",
    "is_parameter_cell",
]
