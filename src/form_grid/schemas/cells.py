from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Fixed ceiling so cells stay legible; also the upper bound of a configured row width.
MAX_COLUMNS_PER_ROW = 5
DEFAULT_NEW_ROW_COLUMNS = 3


class PresentationMode(str, Enum):
    """How a section grid is being presented."""

    VIEW = "view"
    EDITABLE = "editable"
    ADMIN = "admin"


class GridConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    rows_columns: Dict[str, int] = Field(
        default_factory=dict,
        description="Declared column count per row, keyed by the row number as a string (e.g. {'1': 3, '2': 1})",
    )


class DisplayConfig(BaseModel):
    """Section layout configuration. Only `grid_config.rows_columns` is interpreted; other keys pass through."""

    model_config = ConfigDict(extra="allow")

    grid_config: GridConfig = Field(default_factory=GridConfig)


class ParameterCell(BaseModel):
    """A form parameter placed on the grid (bound to a reusable parameter definition)."""

    model_config = ConfigDict(extra="allow")

    id: int
    category: Optional[int] = Field(default=None, description="Owning section id")
    parameter_definition: Union[int, Dict[str, Any], None] = Field(
        default=None, description="Parameter definition id or nested definition object"
    )
    grid_row: int = Field(default=1, ge=1)
    grid_column: int = Field(default=1, ge=1)
    grid_span: int = Field(default=1, ge=1)

    @field_validator("grid_row", "grid_column", "grid_span", mode="before")
    @classmethod
    def _default_position(cls, v: Any) -> Any:
        # Positions are optional on the wire; absent/null means 1.
        if v is None or v == 0:
            return 1
        return v


class TextCell(BaseModel):
    """A static label placed on the grid. `content` and `style` are opaque to the layout engine."""

    model_config = ConfigDict(extra="allow")

    id: int
    category: Optional[int] = None
    grid_row: int = Field(..., ge=1)
    grid_column: int = Field(..., ge=1)
    grid_span: int = Field(..., ge=1)
    content: str = ""
    style: Optional[Dict[str, Any]] = None
    is_active: bool = True


Cell = Union[ParameterCell, TextCell]


class RejectedCell(BaseModel):
    """A stored cell record that failed validation, kept so the grid can report it."""

    kind: str = Field(..., description="'param' or 'text', from the list the record came from")
    record: Dict[str, Any] = Field(default_factory=dict)
    error: str = ""

    @property
    def sort_id(self) -> str:
        return f"cell-{self.kind}-{self.record.get('id')}"


def _validation_summary(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())


class Section(BaseModel):
    """A named, orderable container of grid cells."""

    model_config = ConfigDict(extra="allow")

    id: int
    code: str = ""
    number: str = ""
    name: str = ""
    parent: Optional[int] = None
    order: int = 0
    display_config: DisplayConfig = Field(default_factory=DisplayConfig)
    form_parameters: List[ParameterCell] = Field(default_factory=list)
    grid_cells: List[TextCell] = Field(default_factory=list)
    rejected_cells: List[RejectedCell] = Field(
        default_factory=list, description="Cell records left out because they failed validation"
    )

    @model_validator(mode="before")
    @classmethod
    def _split_invalid_cells(cls, data: Any) -> Any:
        # Cells are validated one by one so a single bad record cannot make the section unreadable.
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        rejected: List[Any] = list(data.get("rejected_cells") or [])
        for key, model, kind in (("form_parameters", ParameterCell, "param"), ("grid_cells", TextCell, "text")):
            valid: List[Any] = []
            for item in data.get(key) or []:
                try:
                    valid.append(model.model_validate(item))
                except ValidationError as e:
                    record = dict(item) if isinstance(item, Mapping) else {"value": item}
                    rejected.append(RejectedCell(kind=kind, record=record, error=_validation_summary(e)))
            data[key] = valid
        data["rejected_cells"] = rejected
        return data

    @field_validator("display_config", mode="before")
    @classmethod
    def _null_display_config(cls, v: Any) -> Any:
        return v if v is not None else {}

    def rows_columns(self) -> Dict[int, int]:
        """Configured column count per row, with integer keys. Non-numeric keys are ignored."""
        out: Dict[int, int] = {}
        for key, value in (self.display_config.grid_config.rows_columns or {}).items():
            try:
                out[int(key)] = int(value)
            except (TypeError, ValueError):
                continue
        return out

    def display_config_with(self, rows_columns: Mapping[int, int]) -> Dict[str, Any]:
        """
        Return a full `display_config` payload with `rows_columns` replaced.

        Every other key of the stored config (and of `grid_config`) is preserved.
        """
        config = self.display_config.model_dump()
        grid_config = dict(config.get("grid_config") or {})
        grid_config["rows_columns"] = {str(r): int(c) for r, c in sorted(rows_columns.items())}
        config["grid_config"] = grid_config
        return config


def _field(cell: Any, name: str, default: Any = None) -> Any:
    if isinstance(cell, Mapping):
        return cell.get(name, default)
    return getattr(cell, name, default)


def _has_field(cell: Any, name: str) -> bool:
    if isinstance(cell, Mapping):
        return name in cell
    return hasattr(cell, name)


def is_parameter_cell(cell: Any) -> bool:
    """
    Classify a cell by shape.

    A cell is a parameter cell iff it carries a `parameter_definition` field and
    no string `content` field. No discriminator is persisted, so this is the only
    way cells are told apart.
    """
    has_definition = _has_field(cell, "parameter_definition")
    has_content = isinstance(_field(cell, "content"), str)
    return has_definition and not has_content


def cell_sort_id(cell: Any) -> str:
    kind = "param" if is_parameter_cell(cell) else "text"
    return f"cell-{kind}-{_field(cell, 'id')}"


def empty_slot_id(row: int, column: int) -> str:
    return f"empty-{row}-{column}"
