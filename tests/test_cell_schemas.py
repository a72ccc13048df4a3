from form_grid.schemas.cells import ParameterCell, Section, TextCell, cell_sort_id, is_parameter_cell


def test_is_parameter_cell_is_shape_based():
    assert is_parameter_cell({"id": 1, "parameter_definition": 5, "grid_row": 1})
    assert not is_parameter_cell({"id": 1, "grid_row": 1, "content": "Title"})
    # A definition reference alongside string content is a text cell.
    assert not is_parameter_cell({"id": 1, "parameter_definition": 5, "content": ""})
    # Non-string content does not make it a text cell.
    assert is_parameter_cell({"id": 1, "parameter_definition": 5, "content": None})


def test_is_parameter_cell_agrees_for_models_and_mappings():
    p = ParameterCell.model_validate({"id": 3, "parameter_definition": {"id": 9, "code": "AREA"}})
    t = TextCell.model_validate({"id": 3, "grid_row": 1, "grid_column": 1, "grid_span": 1, "content": "x"})
    assert is_parameter_cell(p) is is_parameter_cell(p.model_dump())
    assert is_parameter_cell(t) is is_parameter_cell(t.model_dump())
    assert cell_sort_id(p) == "cell-param-3"
    assert cell_sort_id(t) == "cell-text-3"


def test_parameter_position_defaults_to_one():
    p = ParameterCell.model_validate({"id": 1, "parameter_definition": 2, "grid_row": None, "grid_span": 0})
    assert (p.grid_row, p.grid_column, p.grid_span) == (1, 1, 1)


def test_display_config_with_preserves_other_keys():
    section = Section.model_validate(
        {
            "id": 7,
            "display_config": {"layout_type": "grid", "grid_config": {"rows_columns": {"1": 2}, "gap": 4}},
        }
    )
    out = section.display_config_with({1: 2, 2: 3})
    assert out["layout_type"] == "grid"
    assert out["grid_config"]["gap"] == 4
    assert out["grid_config"]["rows_columns"] == {"1": 2, "2": 3}


def test_rows_columns_ignores_non_numeric_keys_and_null_config():
    section = Section.model_validate(
        {"id": 1, "display_config": {"grid_config": {"rows_columns": {"2": 4, "header": 1}}}}
    )
    assert section.rows_columns() == {2: 4}
    assert Section.model_validate({"id": 1, "display_config": None}).rows_columns() == {}


def test_bad_cell_records_are_set_aside_not_raised():
    section = Section.model_validate(
        {
            "id": 1,
            "form_parameters": [
                {"id": 1, "parameter_definition": 2, "grid_row": 1},
                {"id": 2, "parameter_definition": 3, "grid_row": -4},
            ],
            "grid_cells": [
                {"id": 5, "grid_row": 1, "grid_column": 2, "grid_span": None, "content": "x"},
                {"id": 6, "grid_row": 0, "grid_column": 1, "grid_span": 1, "content": "y"},
                {"id": 7, "grid_row": 1, "grid_column": 3, "grid_span": 1, "content": "z"},
            ],
        }
    )
    assert [p.id for p in section.form_parameters] == [1]
    assert [c.id for c in section.grid_cells] == [7]
    assert [r.sort_id for r in section.rejected_cells] == ["cell-param-2", "cell-text-5", "cell-text-6"]
    assert "grid_span" in section.rejected_cells[1].error


def test_null_cell_lists_become_empty():
    section = Section.model_validate({"id": 1, "form_parameters": None, "grid_cells": None})
    assert section.form_parameters == [] and section.grid_cells == [] and section.rejected_cells == []
