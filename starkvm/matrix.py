"""Dense row-major matrices of trace values."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from starkvm.field import Fp, next_power_of_two


@dataclass
class RowMajorMatrix:
    """A matrix stored as one flat list, row after row."""

    values: list[Any] = field(default_factory=list)
    width: int = 1

    def __post_init__(self) -> None:
        self.values = list(self.values)
        if self.width <= 0:
            raise ValueError("matrix width must be positive")
        if len(self.values) % self.width:
            raise ValueError("number of values is not a multiple of the width")

    @classmethod
    def new_col(cls, values: Sequence[Any]) -> RowMajorMatrix:
        """A matrix with a single column."""
        return cls(list(values), 1)

    def height(self) -> int:
        return len(self.values) // self.width

    def row(self, index: int) -> list[Any]:
        if not 0 <= index < self.height():
            raise IndexError(f"row {index} out of range")
        start = index * self.width
        return self.values[start : start + self.width]

    def rows(self) -> Iterator[list[Any]]:
        for start in range(0, len(self.values), self.width):
            yield self.values[start : start + self.width]

    def set(self, row: int, col: int, value: Any) -> None:
        if not 0 <= row < self.height() or not 0 <= col < self.width:
            raise IndexError(f"cell ({row}, {col}) out of range")
        self.values[row * self.width + col] = value


def pad_to_power_of_two(values: Sequence[Any], width: int) -> list[Any]:
    """Pad flat row data with zero rows until the row count is a power of two."""
    if len(values) % width:
        raise ValueError("number of values is not a multiple of the width")
    rows = len(values) // width
    padded = list(values)
    padded.extend(Fp(0) for _ in range(next_power_of_two(rows) * width - len(values)))
    return padded