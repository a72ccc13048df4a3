from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from form_grid.store.memory import InMemoryGridStore  # noqa: E402


def param(pid: int, row: int, column: int = 1, span: int = 1, **extra: Any) -> Dict[str, Any]:
    return {
        "id": pid,
        "category": 1,
        "parameter_definition": 100 + pid,
        "grid_row": row,
        "grid_column": column,
        "grid_span": span,
        **extra,
    }


def text(cid: int, row: int, column: int = 1, span: int = 1, content: str = "label", **extra: Any) -> Dict[str, Any]:
    return {
        "id": cid,
        "category": 1,
        "grid_row": row,
        "grid_column": column,
        "grid_span": span,
        "content": content,
        **extra,
    }


@pytest.fixture
def three_row_section() -> Dict[str, Any]:
    """Rows 1-3 declared with 3/3/4 columns; one parameter and one text cell per row."""
    return {
        "id": 1,
        "code": "S1",
        "name": "Datos generales",
        "display_config": {"layout_type": "grid", "grid_config": {"rows_columns": {"1": 3, "2": 3, "3": 4}}},
        "form_parameters": [param(11, 1, 1), param(12, 2, 1, span=2), param(13, 3, 1)],
        "grid_cells": [
            text(21, 1, 3, content="Row one"),
            text(22, 2, 3, content="Row two", style={"fontWeight": "bold"}),
            text(23, 3, 2, span=2, content="Row three"),
        ],
    }


@pytest.fixture
def store(three_row_section: Dict[str, Any]) -> InMemoryGridStore:
    s = InMemoryGridStore()
    s.add_section(three_row_section)
    return s
