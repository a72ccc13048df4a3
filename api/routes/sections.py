from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    ColumnCountRequest,
    ParameterCreateRequest,
    ParameterPositionRequest,
    ReorderRequest,
    TextCellCreateRequest,
    TextCellUpdateRequest,
)
from form_grid.schemas.cells import PresentationMode
from form_grid.service import SectionGridService

router = APIRouter(prefix="/v1/api/sections/{section_id}", tags=["sections"])


def get_grid_service(request: Request) -> SectionGridService:
    return request.app.state.grid_service


async def _admin_grid(service: SectionGridService, section_id: int) -> Dict[str, Any]:
    # Mutations already dropped the cache entry; this read is authoritative.
    grid = await service.get_grid(section_id, PresentationMode.ADMIN)
    return grid.to_dict()


@router.get("/grid")
async def get_grid(
    section_id: int,
    mode: PresentationMode = Query(default=PresentationMode.ADMIN),
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    grid = await service.get_grid(section_id, mode)
    return {"ok": True, "sectionId": section_id, "grid": grid.to_dict()}


@router.put("/rows/{row}/columns")
async def apply_column_count(
    section_id: int,
    row: int,
    body: ColumnCountRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    result = await service.apply_column_count(section_id, row, body.columns)
    return {"ok": True, "result": result.to_dict(), "grid": await _admin_grid(service, section_id)}


@router.post("/rows/initialize")
async def initialize_first_row(
    section_id: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    result = await service.initialize_first_row(section_id)
    return {"ok": True, "result": result.to_dict(), "grid": await _admin_grid(service, section_id)}


@router.post("/rows/{row}/insert-before")
async def insert_row_before(
    section_id: int, row: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    result = await service.insert_row_before(section_id, row)
    return {"ok": True, "result": result.to_dict(), "grid": await _admin_grid(service, section_id)}


@router.post("/rows/{row}/insert-after")
async def insert_row_after(
    section_id: int, row: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    result = await service.insert_row_after(section_id, row)
    return {"ok": True, "result": result.to_dict(), "grid": await _admin_grid(service, section_id)}


@router.delete("/rows/{row}")
async def delete_row(
    section_id: int, row: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    result = await service.delete_row(section_id, row)
    return {"ok": True, "result": result.to_dict(), "grid": await _admin_grid(service, section_id)}


@router.post("/parameters")
async def create_parameter(
    section_id: int,
    body: ParameterCreateRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    param = await service.create_parameter(
        section_id,
        body.parameter_definition,
        row=body.grid_row,
        column=body.grid_column,
        span=body.grid_span,
        is_required=body.is_required,
        is_visible=body.is_visible,
    )
    return {"ok": True, "cell": param.model_dump(mode="json"), "grid": await _admin_grid(service, section_id)}


@router.patch("/parameters/{parameter_id}/position")
async def move_parameter(
    section_id: int,
    parameter_id: int,
    body: ParameterPositionRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    param = await service.move_parameter(
        section_id, parameter_id, row=body.grid_row, column=body.grid_column, span=body.grid_span
    )
    return {"ok": True, "cell": param.model_dump(mode="json"), "grid": await _admin_grid(service, section_id)}


@router.post("/text-cells")
async def create_text_cell(
    section_id: int,
    body: TextCellCreateRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    cell = await service.create_text_cell(
        section_id,
        row=body.grid_row,
        column=body.grid_column,
        span=body.grid_span,
        content=body.content,
        style=body.style,
    )
    return {"ok": True, "cell": cell.model_dump(mode="json"), "grid": await _admin_grid(service, section_id)}


@router.patch("/text-cells/{cell_id}")
async def move_or_edit_text_cell(
    section_id: int,
    cell_id: int,
    body: TextCellUpdateRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    cell = await service.move_text_cell(
        section_id,
        cell_id,
        row=body.grid_row,
        column=body.grid_column,
        span=body.grid_span,
        content=body.content,
        style=body.style,
    )
    return {"ok": True, "cell": cell.model_dump(mode="json"), "grid": await _admin_grid(service, section_id)}


@router.delete("/parameters/{parameter_id}")
async def delete_parameter(
    section_id: int, parameter_id: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    await service.delete_parameter(section_id, parameter_id)
    return {"ok": True, "grid": await _admin_grid(service, section_id)}


@router.delete("/text-cells/{cell_id}")
async def delete_text_cell(
    section_id: int, cell_id: int, service: SectionGridService = Depends(get_grid_service)
) -> Dict[str, Any]:
    await service.delete_text_cell(section_id, cell_id)
    return {"ok": True, "grid": await _admin_grid(service, section_id)}


@router.post("/reorder")
async def reorder(
    section_id: int,
    body: ReorderRequest,
    service: SectionGridService = Depends(get_grid_service),
) -> Dict[str, Any]:
    """
    Commit one drag gesture.

    Drops onto an occupied or out-of-range slot are not errors: the response
    reports `committed: false` and the grid is unchanged.
    """
    outcome = await service.reorder(section_id, body.active_id, body.over_id)
    return {"ok": True, "drop": outcome.to_dict(), "grid": await _admin_grid(service, section_id)}
