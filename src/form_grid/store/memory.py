from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from form_grid.errors import CellNotFoundError, SectionNotFoundError, StoreError
from form_grid.schemas.cells import Section

logger = logging.getLogger(__name__)

FailHook = Callable[[str, Dict[str, Any]], bool]


class InMemoryGridStore:
    """
    Dict-backed `GridStore` for local runs and tests.

    Every call is appended to `calls` as `(operation, kwargs)`. When `fail_on`
    returns True for a call, the call raises `StoreError` before touching any
    state, which is how tests simulate a request failing mid-sequence.
    """

    def __init__(self, *, fail_on: Optional[FailHook] = None) -> None:
        self.sections: Dict[int, Dict[str, Any]] = {}
        self.parameters: Dict[int, Dict[str, Any]] = {}
        self.text_cells: Dict[int, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_on = fail_on

    def add_section(self, section: Dict[str, Any]) -> None:
        """Seed a section record (cells may be nested under `form_parameters` / `grid_cells`)."""
        record = copy.deepcopy(section)
        section_id = int(record["id"])
        for param in record.pop("form_parameters", None) or []:
            self.parameters[int(param["id"])] = {**param, "category": section_id}
        for cell in record.pop("grid_cells", None) or []:
            self.text_cells[int(cell["id"])] = {**cell, "category": section_id}
        self.sections[section_id] = record

    def _record(self, operation: str, **kwargs: Any) -> None:
        self.calls.append((operation, kwargs))
        if self.fail_on is not None and self.fail_on(operation, kwargs):
            logger.warning("memory store: injected failure op=%s args=%s", operation, kwargs)
            raise StoreError(f"{operation} failed", details={"operation": operation, **kwargs})

    def mutation_calls(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [c for c in self.calls if c[0] != "fetch_section"]

    async def fetch_section(self, section_id: int) -> Section:
        self._record("fetch_section", section_id=section_id)
        record = self.sections.get(int(section_id))
        if record is None:
            raise SectionNotFoundError(f"Section {section_id} not found")
        payload = copy.deepcopy(record)
        payload["form_parameters"] = [
            copy.deepcopy(p) for p in self.parameters.values() if p.get("category") == int(section_id)
        ]
        payload["grid_cells"] = [
            copy.deepcopy(c) for c in self.text_cells.values() if c.get("category") == int(section_id)
        ]
        return Section.model_validate(payload)

    async def update_display_config(self, section_id: int, display_config: Dict[str, Any]) -> None:
        self._record("update_display_config", section_id=section_id, display_config=display_config)
        if int(section_id) not in self.sections:
            raise SectionNotFoundError(f"Section {section_id} not found")
        self.sections[int(section_id)]["display_config"] = copy.deepcopy(display_config)

    @staticmethod
    def _next_id(table: Dict[int, Dict[str, Any]]) -> int:
        return max(table, default=0) + 1

    async def create_parameter(
        self,
        section_id: int,
        *,
        parameter_definition: int,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        is_required: bool = False,
        is_visible: bool = True,
    ) -> Dict[str, Any]:
        self._record(
            "create_parameter",
            section_id=section_id,
            parameter_definition=parameter_definition,
            grid_row=grid_row,
            grid_column=grid_column,
            grid_span=grid_span,
        )
        if int(section_id) not in self.sections:
            raise SectionNotFoundError(f"Section {section_id} not found")
        record = {
            "id": self._next_id(self.parameters),
            "category": int(section_id),
            "parameter_definition": parameter_definition,
            "grid_row": grid_row,
            "grid_column": grid_column,
            "grid_span": grid_span,
            "is_required": is_required,
            "is_visible": is_visible,
        }
        self.parameters[record["id"]] = record
        return copy.deepcopy(record)

    async def create_text_cell(
        self,
        section_id: int,
        *,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        content: str,
        style: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self._record(
            "create_text_cell",
            section_id=section_id,
            grid_row=grid_row,
            grid_column=grid_column,
            grid_span=grid_span,
            content=content,
            style=style,
        )
        if int(section_id) not in self.sections:
            raise SectionNotFoundError(f"Section {section_id} not found")
        record = {
            "id": self._next_id(self.text_cells),
            "category": int(section_id),
            "grid_row": grid_row,
            "grid_column": grid_column,
            "grid_span": grid_span,
            "content": content,
            "style": copy.deepcopy(style),
            "is_active": True,
        }
        self.text_cells[record["id"]] = record
        return copy.deepcopy(record)

    async def update_parameter_position(
        self, parameter_id: int, *, grid_row: int, grid_column: int, grid_span: int
    ) -> None:
        self._record(
            "update_parameter_position",
            parameter_id=parameter_id,
            grid_row=grid_row,
            grid_column=grid_column,
            grid_span=grid_span,
        )
        param = self.parameters.get(int(parameter_id))
        if param is None:
            raise CellNotFoundError(f"Parameter {parameter_id} not found")
        param.update(grid_row=grid_row, grid_column=grid_column, grid_span=grid_span)

    async def update_text_cell(
        self,
        cell_id: int,
        *,
        grid_row: int,
        grid_column: int,
        grid_span: int,
        content: str,
        style: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._record(
            "update_text_cell",
            cell_id=cell_id,
            grid_row=grid_row,
            grid_column=grid_column,
            grid_span=grid_span,
            content=content,
            style=style,
        )
        cell = self.text_cells.get(int(cell_id))
        if cell is None:
            raise CellNotFoundError(f"Text cell {cell_id} not found")
        cell.update(grid_row=grid_row, grid_column=grid_column, grid_span=grid_span, content=content)
        if style is not None:
            cell["style"] = copy.deepcopy(style)

    async def delete_parameter(self, parameter_id: int) -> None:
        self._record("delete_parameter", parameter_id=parameter_id)
        if self.parameters.pop(int(parameter_id), None) is None:
            raise CellNotFoundError(f"Parameter {parameter_id} not found")

    async def delete_text_cell(self, cell_id: int) -> None:
        self._record("delete_text_cell", cell_id=cell_id)
        if self.text_cells.pop(int(cell_id), None) is None:
            raise CellNotFoundError(f"Text cell {cell_id} not found")
