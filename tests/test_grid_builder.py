from form_grid.layout.grid_builder import SLOT_CELL, SLOT_EMPTY, SLOT_OCCUPIED, build_grid
from form_grid.schemas.cells import PresentationMode, Section

from conftest import param, text


def _section(**kwargs):
    return Section.model_validate({"id": 1, **kwargs})


def test_columns_of_prefers_configured_width(three_row_section):
    grid = build_grid(Section.model_validate(three_row_section))
    assert grid.row_count == 3
    assert [grid.columns_of(r) for r in (1, 2, 3)] == [3, 3, 4]


def test_columns_of_falls_back_to_cell_extent_clamped_to_five():
    section = _section(form_parameters=[param(1, 1, 2, span=2), param(2, 2, 4, span=4)])
    grid = build_grid(section)
    assert grid.columns_of(1) == 3
    assert grid.columns_of(2) == 5
    # Unconfigured row with no cells.
    assert grid.columns_of(9) == 1


def test_row_count_covers_config_parameters_and_text_cells():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"2": 3}}},
        form_parameters=[param(1, 4)],
        grid_cells=[text(2, 6)],
    )
    assert build_grid(section).row_count == 6


def test_empty_section_has_no_rows_in_every_mode():
    section = _section()
    for mode in PresentationMode:
        grid = build_grid(section, mode=mode)
        assert grid.row_count == 0
        assert grid.grid == {}
    assert build_grid(section, mode="admin").show_empty_state is True
    assert build_grid(section, mode="view").show_empty_state is False
    assert build_grid(section, mode="editable").show_empty_state is False


def test_configured_rows_without_cells_are_built():
    section = _section(display_config={"grid_config": {"rows_columns": {"1": 3, "2": 2}}})
    grid = build_grid(section, mode="admin")
    assert grid.row_count == 2
    assert sorted(grid.grid[2]) == [1, 2]
    assert all(slot.kind == SLOT_EMPTY for slot in grid.grid[1].values())
    assert grid.show_empty_state is False


def test_span_marks_tombstones_not_second_references(three_row_section):
    grid = build_grid(Section.model_validate(three_row_section))
    anchor = grid.slot(2, 1)
    tail = grid.slot(2, 2)
    assert anchor.kind == SLOT_CELL and anchor.cell.id == 12
    assert tail.kind == SLOT_OCCUPIED
    assert tail.cell is None
    assert tail.anchor_id == "cell-param-12"
    assert grid.anchor_of(2, 2).id == 12
    assert grid.slot(3, 3).anchor_id == "cell-text-23"
    assert grid.slot(3, 4).kind == SLOT_EMPTY


def test_span_tail_is_cut_at_row_width():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3}}},
        grid_cells=[text(1, 1, 2, span=4)],
    )
    grid = build_grid(section)
    assert sorted(grid.grid[1]) == [1, 2, 3]
    assert grid.slot(1, 3).kind == SLOT_OCCUPIED


def test_text_cell_wins_same_coordinate_over_parameter():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 2}}},
        form_parameters=[param(1, 1, 1)],
        grid_cells=[text(5, 1, 1, content="Heading")],
    )
    slot = build_grid(section).slot(1, 1)
    assert slot.anchor_id == "cell-text-5"
    assert slot.cell.content == "Heading"


def test_parameter_on_span_tombstone_is_reported_as_collision():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3}}},
        form_parameters=[param(1, 1, 1, span=2), param(2, 1, 2)],
    )
    grid = build_grid(section)
    assert grid.slot(1, 2).anchor_id == "cell-param-1"
    assert [(o.cell.id, o.reason) for o in grid.orphans] == [(2, "collision")]


def test_orphan_cells_are_dropped_without_raising(three_row_section):
    data = dict(three_row_section)
    data["grid_cells"] = [*data["grid_cells"], text(99, 2, 5)]
    section = Section.model_validate(data)
    grid = build_grid(section)
    assert grid.row_count == 3
    assert all(slot.anchor_id != "cell-text-99" for row in grid.grid.values() for slot in row.values())
    assert [o.reason for o in grid.orphans] == ["out_of_bounds"]


def test_far_row_cell_extends_rows_rather_than_orphaning():
    # A cell at row 99 counts towards the row count; it is only an orphan
    # when it sits outside the row's width.
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3, "2": 3, "3": 3, "99": 1}}},
        form_parameters=[param(1, 99, 2)],
    )
    grid = build_grid(section)
    assert grid.row_count == 99
    assert grid.orphans and grid.orphans[0].cell.id == 1


def test_rebuild_is_idempotent(three_row_section):
    section = Section.model_validate(three_row_section)
    first = build_grid(section, mode="editable")
    second = build_grid(section, mode="editable")
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_span_containment_and_no_overlap(three_row_section):
    grid = build_grid(Section.model_validate(three_row_section))
    for row in range(1, grid.row_count + 1):
        covered = []
        for slot in grid.grid[row].values():
            if slot.kind != SLOT_CELL:
                continue
            cell = slot.cell
            assert cell.grid_column + cell.grid_span - 1 <= grid.columns_of(row)
            covered.extend(range(cell.grid_column, cell.grid_column + cell.grid_span))
        assert len(covered) == len(set(covered))


def test_view_mode_hides_rows_without_cells():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3, "2": 3, "3": 3}}},
        form_parameters=[param(1, 1)],
        grid_cells=[text(2, 3)],
    )
    assert build_grid(section, mode="view").rows_to_render() == [1, 3]
    assert build_grid(section, mode="editable").rows_to_render() == [1, 2, 3]
    assert [r["row"] for r in build_grid(section, mode="view").to_dict()["rows"]] == [1, 3]


def test_footprint_is_free_ignores_the_moving_cell(three_row_section):
    grid = build_grid(Section.model_validate(three_row_section))
    assert grid.footprint_is_free(1, 2, 1)
    assert not grid.footprint_is_free(1, 2, 2)
    assert grid.footprint_is_free(3, 3, 2, ignore="cell-text-23")
    assert not grid.footprint_is_free(3, 4, 2, ignore="cell-text-23")
    assert not grid.footprint_is_free(4, 1, 1)
    assert grid.occupied_extent(3) == 3
    assert grid.occupied_extent(1) == 3


def test_to_dict_shape(three_row_section):
    payload = build_grid(Section.model_validate(three_row_section)).to_dict()
    assert payload["rowCount"] == 3
    row2 = payload["rows"][1]
    assert row2["columns"] == 3
    assert row2["slots"][0]["id"] == "cell-param-12"
    assert row2["slots"][0]["span"] == 2
    assert row2["slots"][0]["isParameter"] is True
    assert row2["slots"][1] == {"column": 2, "kind": "occupied", "id": "empty-2-2", "anchorId": "cell-param-12"}


def test_invalid_records_become_orphans_and_the_rest_still_renders():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3}}},
        form_parameters=[param(1, 1, 1)],
        grid_cells=[text(5, 1, 2, span=None), text(6, 0, 1)],
    )
    grid = build_grid(section)
    assert grid.slot(1, 1).anchor_id == "cell-param-1"
    assert grid.slot(1, 2).kind == SLOT_EMPTY
    assert grid.to_dict()["orphans"] == [
        {"id": "cell-text-5", "reason": "invalid"},
        {"id": "cell-text-6", "reason": "invalid"},
    ]
    assert grid.find_orphan("cell-text-6").reason == "invalid"


def test_text_cell_over_spanning_parameter_clears_its_tail():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3}}},
        form_parameters=[param(1, 1, 1, span=2)],
        grid_cells=[text(5, 1, 1)],
    )
    grid = build_grid(section)
    assert grid.slot(1, 1).anchor_id == "cell-text-5"
    assert grid.slot(1, 2).kind == SLOT_EMPTY
    assert grid.slot(1, 2).anchor_id is None
    assert [(o.sort_id, o.reason) for o in grid.orphans] == [("cell-param-1", "collision")]
    assert grid.footprint_is_free(1, 2, 2)


def test_text_cell_tail_over_parameter_anchor_replaces_it():
    section = _section(
        display_config={"grid_config": {"rows_columns": {"1": 3}}},
        form_parameters=[param(1, 1, 2)],
        grid_cells=[text(5, 1, 1, span=2)],
    )
    grid = build_grid(section)
    assert grid.slot(1, 2).anchor_id == "cell-text-5"
    assert grid.slot(1, 2).kind == SLOT_OCCUPIED
    assert [(o.sort_id, o.reason) for o in grid.orphans] == [("cell-param-1", "collision")]
