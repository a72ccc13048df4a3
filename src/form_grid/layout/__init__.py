from form_grid.layout.grid_builder import GridModel, GridSlot, build_grid
from form_grid.layout.reorder import DragState, DropOutcome, ReorderController
from form_grid.layout.row_mutations import RowMutationEngine, RowMutationResult, plan_delete, plan_insert

__all__ = [
    "DragState",
    "DropOutcome",
    "GridModel",
    "GridSlot",
    "ReorderController",
    "RowMutationEngine",
    "RowMutationResult",
    "build_grid",
    "plan_delete",
    "plan_insert",
]
