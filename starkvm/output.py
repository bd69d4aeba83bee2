"""The output chip: the bytes a program writes, with their clock cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import pairwise
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.chip import Chip, Interaction, VirtualPairCol
from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix, pad_to_power_of_two
from starkvm.opcodes import WRITE
from starkvm.word import CPU_MEMORY_CHANNELS, MEMORY_CELL_BYTES

NUM_OUTPUT_COLS = 7


@dataclass(frozen=True)
class OutputCols:
    """The columns of one output trace row."""

    clk: Any
    value: Any
    # whether the row is a real write rather than a dummy
    is_real: Any
    # clk' - clk
    diff: Any
    # increment-by-one counter and multiplicities for the local range check
    counter: Any
    counter_mult: Any
    opcode: Any


def _view(row: Any) -> OutputCols:
    return OutputCols(*row[:NUM_OUTPUT_COLS])


OUTPUT_COL_MAP = _view(range(NUM_OUTPUT_COLS))


def _row(clk: int, value: int, is_real: bool) -> list[Fp]:
    row = [Fp(0)] * NUM_OUTPUT_COLS
    row[OUTPUT_COL_MAP.clk] = Fp(clk)
    if is_real:
        row[OUTPUT_COL_MAP.is_real] = Fp(1)
        row[OUTPUT_COL_MAP.value] = Fp(value)
    return row


@dataclass
class OutputChip(Chip):
    """The output bytes as (clock cycle, byte) pairs."""

    values: list[tuple[int, int]] = field(default_factory=list)

    width: ClassVar[int] = NUM_OUTPUT_COLS

    def bytes(self) -> bytes:
        return bytes(byte for _, byte in self.values)

    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        table_len = len(self.values)
        rows: list[list[Fp]] = []
        for (clk_1, val_1), (clk_2, _) in pairwise(self.values):
            if clk_2 < clk_1:
                raise ValueError(f"output clock goes backwards: {clk_1} then {clk_2}")
            num_rows = (clk_2 - clk_1) // table_len + 1
            window = [_row(clk_1, val_1, True)]
            # Dummy outputs keep clock gaps within range.
            window.extend(
                _row(clk_1 + table_len * (i + 1), 0, False) for i in range(1, num_rows)
            )
            clks = [row[OUTPUT_COL_MAP.clk] for row in window] + [Fp(clk_2)]
            for row, (clk, clk_next) in zip(window, pairwise(clks)):
                row[OUTPUT_COL_MAP.diff] = clk_next - clk
            rows.extend(window)

        if self.values:
            last_clk, last_value = self.values[-1]
            rows.append(_row(last_clk, last_value, True))

        values = pad_to_power_of_two([v for row in rows for v in row], NUM_OUTPUT_COLS)
        return RowMajorMatrix(values, NUM_OUTPUT_COLS)

    def global_receives(self, machine: Any) -> list[Interaction]:
        values = [
            VirtualPairCol.constant(0)
            for _ in range(CPU_MEMORY_CHANNELS * MEMORY_CELL_BYTES)
        ]
        values[MEMORY_CELL_BYTES - 1] = VirtualPairCol.single_main(OUTPUT_COL_MAP.value)
        fields_ = [
            VirtualPairCol.single_main(OUTPUT_COL_MAP.opcode),
            *values,
            VirtualPairCol.single_main(OUTPUT_COL_MAP.clk),
        ]
        return [
            Interaction(
                fields_,
                VirtualPairCol.single_main(OUTPUT_COL_MAP.is_real),
                machine.general_bus(),
            )
        ]

    def eval(self, builder: AirBuilder) -> None:
        local = _view(builder.main.local)
        nxt = _view(builder.main.next)

        # Range check constraints.
        builder.when_transition().assert_eq(local.diff, nxt.clk - local.clk)
        builder.when_transition().assert_eq(nxt.counter, local.counter + 1)

        # Real rows carry the WRITE opcode on the bus.
        builder.when(local.is_real).assert_eq(local.opcode, WRITE)