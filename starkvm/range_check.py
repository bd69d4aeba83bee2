"""The range checker chip: a lookup table of the values 0 .. max_value - 1."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.chip import Chip, Interaction, VirtualPairCol
from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix
from starkvm.word import Word

NUM_RANGE_COLS = 2


@dataclass(frozen=True)
class RangeCols:
    """The columns of one range table row."""

    mult: Any
    counter: Any


RANGE_COL_MAP = RangeCols(*range(NUM_RANGE_COLS))


@dataclass
class RangeCheckerChip(Chip):
    """Counts how often each value in 0 .. max_value - 1 was range checked."""

    max_value: int = 256
    count: dict[int, int] = field(default_factory=dict)

    width: ClassVar[int] = NUM_RANGE_COLS

    def range_check(self, word: Word) -> None:
        """Record every cell of the word in the range check counter."""
        for cell in word:
            value = int(cell)
            self.count[value] = self.count.get(value, 0) + 1

    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        values: list[Fp] = []
        for n in range(self.max_value):
            row = [Fp(0)] * NUM_RANGE_COLS
            row[RANGE_COL_MAP.mult] = Fp(self.count.get(n, 0))
            row[RANGE_COL_MAP.counter] = Fp(n)
            values.extend(row)
        return RowMajorMatrix(values, NUM_RANGE_COLS)

    def preprocessed_trace(self) -> RowMajorMatrix:
        return RowMajorMatrix.new_col([Fp(n) for n in range(self.max_value)])

    def global_receives(self, machine: Any) -> list[Interaction]:
        return [
            Interaction(
                [VirtualPairCol.single_main(RANGE_COL_MAP.counter)],
                VirtualPairCol.single_main(RANGE_COL_MAP.mult),
                machine.range_bus(),
            )
        ]

    def eval(self, builder: AirBuilder) -> None:
        """The table has no constraints of its own beyond the bus argument."""