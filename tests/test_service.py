import asyncio

import pytest

from form_grid.errors import CellNotFoundError, CellPlacementError, DuplicateParameterError, PartialMutationError
from form_grid.service import SectionGridService


def _fetches(store):
    return sum(1 for op, _ in store.calls if op == "fetch_section")


def test_reads_are_cached_until_a_mutation_invalidates(store):
    service = SectionGridService(store, cache_ttl_sec=60)
    asyncio.run(service.get_grid(1))
    asyncio.run(service.get_grid(1, "view"))
    assert _fetches(store) == 1

    asyncio.run(service.insert_row_after(1, 3))
    grid = asyncio.run(service.get_grid(1))
    assert grid.row_count == 4


def test_failed_mutation_still_invalidates(store):
    service = SectionGridService(store, cache_ttl_sec=60)
    asyncio.run(service.get_grid(1))
    store.fail_on = lambda op, kw: op == "update_text_cell"
    with pytest.raises(PartialMutationError):
        asyncio.run(service.insert_row_before(1, 1))
    store.fail_on = None

    grid = asyncio.run(service.get_grid(1))
    # Half-applied state is what the next read shows.
    assert grid.row_count == 4
    assert grid.cells_in_row(1) == [c for c in grid.cells if c.id == 21]


def test_zero_ttl_disables_cache(store):
    service = SectionGridService(store, cache_ttl_sec=0)
    asyncio.run(service.get_grid(1))
    asyncio.run(service.get_grid(1))
    assert _fetches(store) == 2


def test_move_parameter_rejects_same_coordinate_and_overflow(store):
    service = SectionGridService(store)
    with pytest.raises(CellPlacementError):
        asyncio.run(service.move_parameter(1, 11, row=1, column=3))
    with pytest.raises(CellPlacementError):
        asyncio.run(service.move_parameter(1, 12, row=1, column=2))
    with pytest.raises(CellPlacementError):
        asyncio.run(service.move_parameter(1, 11, row=5, column=1))
    assert store.mutation_calls() == []


def test_move_parameter_keeps_span_by_default(store):
    service = SectionGridService(store)
    asyncio.run(service.apply_column_count(1, 1, 5))
    moved = asyncio.run(service.move_parameter(1, 12, row=1, column=4))
    assert (moved.grid_row, moved.grid_column, moved.grid_span) == (1, 4, 2)
    assert store.mutation_calls()[-1] == (
        "update_parameter_position",
        {"parameter_id": 12, "grid_row": 1, "grid_column": 4, "grid_span": 2},
    )


def test_move_text_cell_edit_only_skips_placement_check(store):
    service = SectionGridService(store)
    cell = asyncio.run(service.move_text_cell(1, 21, content="Renamed"))
    assert cell.content == "Renamed"
    assert store.text_cells[21]["content"] == "Renamed"
    assert store.text_cells[21]["grid_row"] == 1


def test_cells_must_belong_to_the_section(store):
    store.add_section({"id": 2, "form_parameters": [{"id": 50, "parameter_definition": 1, "category": 2}]})
    service = SectionGridService(store)
    with pytest.raises(CellNotFoundError):
        asyncio.run(service.delete_parameter(1, 50))
    with pytest.raises(CellNotFoundError):
        asyncio.run(service.delete_text_cell(2, 21))
    asyncio.run(service.delete_parameter(2, 50))
    assert 50 not in store.parameters


def test_reorder_runs_one_gesture_against_fresh_state(store):
    service = SectionGridService(store, cache_ttl_sec=60)
    outcome = asyncio.run(service.reorder(1, "cell-param-11", "empty-1-2"))
    assert outcome.committed is True
    assert store.parameters[11]["grid_column"] == 2

    outcome = asyncio.run(service.reorder(1, "cell-param-11", "cell-param-11"))
    assert outcome.committed is False
    assert [op for op, _ in store.mutation_calls()] == ["update_parameter_position"]


def test_create_text_cell_at_an_empty_slot(store):
    service = SectionGridService(store, cache_ttl_sec=60)
    asyncio.run(service.get_grid(1))
    cell = asyncio.run(service.create_text_cell(1, row=1, column=2, content="Nota", style={"fontWeight": "bold"}))
    assert (cell.id, cell.grid_row, cell.grid_column, cell.grid_span) == (24, 1, 2, 1)
    assert store.text_cells[24]["is_active"] is True

    grid = asyncio.run(service.get_grid(1))
    assert grid.slot(1, 2).anchor_id == "cell-text-24"


def test_create_text_cell_rejects_taken_or_overflowing_slots(store):
    service = SectionGridService(store)
    with pytest.raises(CellPlacementError):
        asyncio.run(service.create_text_cell(1, row=1, column=3, content="x"))
    with pytest.raises(CellPlacementError):
        # Tail of parameter 12.
        asyncio.run(service.create_text_cell(1, row=2, column=2, content="x"))
    with pytest.raises(CellPlacementError):
        asyncio.run(service.create_text_cell(1, row=3, column=4, span=2, content="x"))
    with pytest.raises(CellPlacementError):
        asyncio.run(service.create_text_cell(1, row=4, column=1, content="x"))
    assert store.mutation_calls() == []


def test_create_parameter_places_new_definition_once(store):
    service = SectionGridService(store)
    param = asyncio.run(service.create_parameter(1, 500, row=3, column=4, is_required=True))
    assert (param.id, param.grid_row, param.grid_column, param.grid_span) == (14, 3, 4, 1)
    assert store.parameters[14]["is_required"] is True

    with pytest.raises(DuplicateParameterError):
        asyncio.run(service.create_parameter(1, 111, row=1, column=2))
    with pytest.raises(CellPlacementError):
        asyncio.run(service.create_parameter(1, 501, row=1, column=1))
    assert [op for op, _ in store.mutation_calls()] == ["create_parameter"]


def test_invalid_record_does_not_break_reads_and_can_be_deleted(store):
    store.text_cells[30] = {"id": 30, "category": 1, "grid_row": 0, "grid_column": 1, "grid_span": None, "content": "?"}
    service = SectionGridService(store)
    grid = asyncio.run(service.get_grid(1))
    assert grid.row_count == 3
    assert grid.to_dict()["orphans"] == [{"id": "cell-text-30", "reason": "invalid"}]

    asyncio.run(service.delete_text_cell(1, 30))
    assert 30 not in store.text_cells
    assert asyncio.run(service.get_grid(1)).orphans == []
