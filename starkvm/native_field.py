"""The native field chip: addition, subtraction and multiplication in the trace field."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.chip import Chip, Interaction, VirtualPairCol
from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix, pad_to_power_of_two
from starkvm.opcodes import ADD, MUL, SUB
from starkvm.word import MEMORY_CELL_BYTES, Word

NUM_NATIVE_FIELD_COLS = 3 * MEMORY_CELL_BYTES + 3

# Weights of the big-endian bytes of a word, most significant first.
_BYTE_WEIGHTS = (1 << 24, 1 << 16, 1 << 8, 1)


@dataclass(frozen=True)
class NativeFieldCols:
    """The columns of one native field trace row."""

    input_1: Word
    input_2: Word
    # witnessed output
    output: Word
    is_add: Any
    is_sub: Any
    is_mul: Any


def _view(row: Any) -> NativeFieldCols:
    n = MEMORY_CELL_BYTES
    return NativeFieldCols(
        Word(tuple(row[0:n])),
        Word(tuple(row[n : 2 * n])),
        Word(tuple(row[2 * n : 3 * n])),
        row[3 * n],
        row[3 * n + 1],
        row[3 * n + 2],
    )


COL_MAP = _view(range(NUM_NATIVE_FIELD_COLS))


class NativeOpKind(Enum):
    """The native field operations, valued by their opcodes."""

    ADD = ADD
    SUB = SUB
    MUL = MUL


@dataclass(frozen=True)
class NativeFieldOperation:
    """One recorded operation: dst = src1 <op> src2."""

    kind: NativeOpKind
    dst: Word
    src1: Word
    src2: Word


def _flag_column(kind: NativeOpKind) -> int:
    if kind is NativeOpKind.ADD:
        return COL_MAP.is_add
    if kind is NativeOpKind.SUB:
        return COL_MAP.is_sub
    return COL_MAP.is_mul


def _op_to_row(op: NativeFieldOperation) -> list[Fp]:
    row = [Fp(0)] * NUM_NATIVE_FIELD_COLS
    row[_flag_column(op.kind)] = Fp(1)
    for columns, word in (
        (COL_MAP.input_1, op.src1),
        (COL_MAP.input_2, op.src2),
        (COL_MAP.output, op.dst),
    ):
        for column, cell in zip(columns, word):
            row[column] = Fp(int(cell))
    return row


def _combine(word: Word) -> Any:
    """The field element a big-endian word of bytes stands for."""
    total: Any = 0
    for weight, cell in reversed(list(zip(_BYTE_WEIGHTS, word))):
        total = total + cell * weight
    return total


@dataclass
class NativeFieldChip(Chip):
    """Records native field operations and proves them correct."""

    operations: list[NativeFieldOperation] = field(default_factory=list)

    width: ClassVar[int] = NUM_NATIVE_FIELD_COLS

    def record(self, kind: NativeOpKind, b: Word, c: Word) -> Word:
        """Compute b <op> c in the field, record the operation and return the result."""
        kind = NativeOpKind(kind)
        lhs = Fp(b.to_u32())
        rhs = Fp(c.to_u32())
        if kind is NativeOpKind.ADD:
            result = lhs + rhs
        elif kind is NativeOpKind.SUB:
            result = lhs - rhs
        else:
            result = lhs * rhs
        a = Word.from_u32(result.value)
        self.operations.append(NativeFieldOperation(kind, a, b, c))
        return a

    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        values = [value for op in self.operations for value in _op_to_row(op)]
        return RowMajorMatrix(
            pad_to_power_of_two(values, NUM_NATIVE_FIELD_COLS), NUM_NATIVE_FIELD_COLS
        )

    def _is_real(self) -> VirtualPairCol:
        return VirtualPairCol.sum_main([COL_MAP.is_add, COL_MAP.is_sub, COL_MAP.is_mul])

    def global_sends(self, machine: Any) -> list[Interaction]:
        """Send every output byte to the range check bus."""
        return [
            Interaction(
                [VirtualPairCol.single_main(column)],
                self._is_real(),
                machine.range_bus(),
            )
            for column in COL_MAP.output
        ]

    def global_receives(self, machine: Any) -> list[Interaction]:
        opcode = VirtualPairCol.new_main(
            [
                (COL_MAP.is_add, ADD),
                (COL_MAP.is_sub, SUB),
                (COL_MAP.is_mul, MUL),
            ],
            0,
        )
        fields_ = [
            opcode,
            *(VirtualPairCol.single_main(column) for column in COL_MAP.input_1),
            *(VirtualPairCol.single_main(column) for column in COL_MAP.input_2),
            *(VirtualPairCol.single_main(column) for column in COL_MAP.output),
        ]
        return [Interaction(fields_, self._is_real(), machine.general_bus())]

    def eval(self, builder: AirBuilder) -> None:
        local = _view(builder.main.local)

        b = _combine(local.input_1)
        c = _combine(local.input_2)
        a = _combine(local.output)

        builder.when(local.is_add).assert_eq(a, b + c)
        builder.when(local.is_sub).assert_eq(a, b - c)
        builder.when(local.is_mul).assert_eq(a, b * c)