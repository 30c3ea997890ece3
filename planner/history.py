# planner/history.py
from __future__ import annotations

from typing import Generic, List, TypeVar

T = TypeVar("T")

MAX_HISTORY = 50


class History(Generic[T]):
    """Undo/redo over immutable snapshots; setting a new state clears redo."""

    def __init__(self, present: T, limit: int = MAX_HISTORY):
        self.present = present
        self.limit = limit
        self.past: List[T] = []
        self.future: List[T] = []

    def set(self, state: T) -> None:
        self.past.append(self.present)
        if len(self.past) > self.limit:
            self.past.pop(0)
        self.present = state
        self.future.clear()

    def replace(self, state: T) -> None:
        """Swap the present state without recording an undo step."""
        self.present = state

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def undo(self) -> T:
        if self.past:
            self.future.append(self.present)
            self.present = self.past.pop()
        return self.present

    def redo(self) -> T:
        if self.future:
            self.past.append(self.present)
            self.present = self.future.pop()
        return self.present

    def reset(self, state: T) -> None:
        self.present = state
        self.past.clear()
        self.future.clear()
