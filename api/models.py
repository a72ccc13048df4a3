from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from form_grid.schemas.cells import MAX_COLUMNS_PER_ROW


class ColumnCountRequest(BaseModel):
    """New declared width for one row."""

    columns: int = Field(..., ge=1, le=MAX_COLUMNS_PER_ROW, description="Number of columns in the row (1-5)")


class ParameterPositionRequest(BaseModel):
    """Position update for a parameter cell. The endpoint accepts row/column/span only."""

    model_config = ConfigDict(extra="forbid")

    grid_row: int = Field(..., ge=1)
    grid_column: int = Field(..., ge=1)
    grid_span: Optional[int] = Field(default=None, ge=1, description="Omit to keep the current span")


class TextCellUpdateRequest(BaseModel):
    """Move and/or edit a text cell. Missing fields keep their stored value."""

    grid_row: Optional[int] = Field(default=None, ge=1)
    grid_column: Optional[int] = Field(default=None, ge=1)
    grid_span: Optional[int] = Field(default=None, ge=1)
    content: Optional[str] = None
    style: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _not_empty(self) -> "TextCellUpdateRequest":
        if all(v is None for v in (self.grid_row, self.grid_column, self.grid_span, self.content, self.style)):
            raise ValueError("at least one field must be provided")
        return self


class ReorderRequest(BaseModel):
    """One drag gesture: the sort id picked up and the slot it was released over."""

    model_config = ConfigDict(populate_by_name=True)

    active_id: str = Field(..., alias="activeId", description="Sort id of the dragged cell, e.g. 'cell-param-12'")
    over_id: Optional[str] = Field(
        default=None, alias="overId", description="Sort id of the drop target ('empty-<row>-<col>' or a cell id)"
    )


class ParameterCreateRequest(BaseModel):
    """Place a parameter definition on an empty slot of the section."""

    model_config = ConfigDict(extra="forbid")

    parameter_definition: int = Field(..., description="Id of the reusable parameter definition")
    grid_row: int = Field(..., ge=1)
    grid_column: int = Field(..., ge=1)
    grid_span: int = Field(default=1, ge=1, le=MAX_COLUMNS_PER_ROW)
    is_required: bool = False
    is_visible: bool = True


class TextCellCreateRequest(BaseModel):
    """New static label at an empty slot."""

    grid_row: int = Field(..., ge=1)
    grid_column: int = Field(..., ge=1)
    grid_span: int = Field(default=1, ge=1, le=MAX_COLUMNS_PER_ROW)
    content: str = ""
    style: Optional[Dict[str, Any]] = None
