from form_grid.schemas.cells import (
    DEFAULT_NEW_ROW_COLUMNS,
    MAX_COLUMNS_PER_ROW,
    Cell,
    DisplayConfig,
    GridConfig,
    ParameterCell,
    PresentationMode,
    RejectedCell,
    Section,
    TextCell,
    cell_sort_id,
    empty_slot_id,
    is_parameter_cell,
)

__all__ = [
    "DEFAULT_NEW_ROW_COLUMNS",
    "MAX_COLUMNS_PER_ROW",
    "Cell",
    "DisplayConfig",
    "GridConfig",
    "ParameterCell",
    "PresentationMode",
    "RejectedCell",
    "Section",
    "TextCell",
    "cell_sort_id",
    "empty_slot_id",
    "is_parameter_cell",
]
