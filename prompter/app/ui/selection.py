from __future__ import annotations

from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

UP = "up"
DOWN = "down"


def move_selection(index: int, direction: str, count: int) -> int:
    """Step the active row up or down, wrapping at both ends. No-op for an empty list."""
    if count <= 0:
        return index
    if direction == UP:
        return (index - 1 + count) % count
    if direction == DOWN:
        return (index + 1) % count
    raise ValueError(f"Unknown direction: {direction!r}")


class SelectionModel:
    """Tracks the active row of the candidate list.

    The index is only meaningful while ``0 <= index < count``; anything else
    means no row is selected.
    """

    def __init__(self, count: int = 0) -> None:
        self.index = 0
        self.count = max(0, count)

    def reset(self, count: int) -> None:
        self.count = max(0, count)
        self.index = 0

    def move(self, direction: str) -> int:
        if self.count > 0:
            current = self.index if self.is_valid(self.index) else 0
            self.index = move_selection(current, direction, self.count)
        return self.index

    def hover(self, row: int) -> bool:
        if not self.is_valid(row):
            return False
        self.index = row
        return True

    def set_index(self, index: int) -> None:
        # Out-of-range values are stored as-is; they render as "nothing selected".
        self.index = index

    def is_valid(self, row: int) -> bool:
        return 0 <= row < self.count

    def is_selected(self, row: int) -> bool:
        return self.is_valid(self.index) and row == self.index

    def current(self, candidates: Sequence[T]) -> Optional[T]:
        if 0 <= self.index < len(candidates):
            return candidates[self.index]
        return None
