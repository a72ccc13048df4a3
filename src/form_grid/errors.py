from __future__ import annotations

from typing import Any, Dict, List, Optional


class FormGridError(Exception):
    """Base class for layout errors surfaced to callers."""

    code = "form_grid_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SectionNotFoundError(FormGridError):
    code = "section_not_found"


class CellNotFoundError(FormGridError):
    code = "cell_not_found"


class GridLayoutError(FormGridError):
    code = "grid_layout_error"


class ColumnCountError(GridLayoutError):
    code = "invalid_column_count"


class CellPlacementError(GridLayoutError):
    code = "invalid_cell_placement"


class DuplicateParameterError(GridLayoutError):
    code = "duplicate_parameter"


class DragDisabledError(FormGridError):
    code = "drag_disabled"


class InvalidDragError(FormGridError):
    code = "invalid_drag"


class StoreError(FormGridError):
    """Opaque persistence failure (network, authorization, backend validation)."""

    code = "store_error"


class PartialMutationError(FormGridError):
    """
    A multi-step row operation failed part way.

    Steps in `completed` are already durable; nothing is rolled back. The
    caller re-fetches the section and either retries or fixes it by hand.
    """

    code = "partial_mutation"

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        completed: List[Dict[str, Any]],
        failed_step: Dict[str, Any],
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            details={"operation": operation, "completedSteps": completed, "failedStep": failed_step},
        )
        self.operation = operation
        self.completed = completed
        self.failed_step = failed_step
        self.cause = cause
