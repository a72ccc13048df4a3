from form_grid.store.base import GridStore
from form_grid.store.memory import InMemoryGridStore

__all__ = ["GridStore", "InMemoryGridStore"]
