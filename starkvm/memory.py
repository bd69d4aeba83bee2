"""The memory chip: a log of reads and writes, sorted by address and clock."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from itertools import pairwise
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.chip import BusArgument, Chip, Interaction, VirtualPairCol
from starkvm.field import Fp, batch_multiplicative_inverse_allowing_zero, next_power_of_two
from starkvm.matrix import RowMajorMatrix
from starkvm.word import MEMORY_CELL_BYTES, Word

NUM_MEM_COLS = 13


@dataclass(frozen=True)
class MemoryCols:
    """The columns of one memory trace row."""

    addr: Any
    value: Word
    clk: Any
    is_read: Any
    is_write: Any
    # addr' - addr if the address changes, otherwise clk' - clk
    diff: Any
    # inverse of diff, or 0 if diff is 0
    diff_inv: Any
    addr_not_equal: Any
    # increment-by-one counter and multiplicities for the local range check
    counter: Any
    counter_mult: Any


def _view(row: Any) -> MemoryCols:
    value_end = 1 + MEMORY_CELL_BYTES
    return MemoryCols(row[0], Word(tuple(row[1:value_end])), *row[value_end:NUM_MEM_COLS])


MEM_COL_MAP = _view(range(NUM_MEM_COLS))


class MemoryOpKind(Enum):
    READ = "read"
    WRITE = "write"
    DUMMY_READ = "dummy_read"


@dataclass(frozen=True)
class MemoryOperation:
    kind: MemoryOpKind
    address: int
    value: Word


_Entry = tuple[int, MemoryOperation]


def _sort_key(entry: _Entry) -> tuple[int, int]:
    clk, op = entry
    return op.address, clk


def _address_key(entry: _Entry) -> int:
    return entry[1].address


def _insert_dummy_reads(ops: list[_Entry]) -> None:
    """Insert dummy reads so that consecutive address or clock gaps stay within the table length."""
    if not ops:
        return
    table_len = len(ops)
    dummies: list[_Entry] = []
    for (clk1, op1), (clk2, op2) in pairwise(ops):
        addr_diff = op2.address - op1.address
        if addr_diff:
            if addr_diff > table_len:
                dummies.extend(
                    (clk1, MemoryOperation(MemoryOpKind.DUMMY_READ, op1.address + table_len * k, op1.value))
                    for k in range(1, addr_diff // table_len + 1)
                )
        else:
            clk_diff = clk2 - clk1
            if clk_diff > table_len:
                dummies.extend(
                    (clk1 + table_len * k, MemoryOperation(MemoryOpKind.DUMMY_READ, op1.address, op1.value))
                    for k in range(1, clk_diff // table_len + 1)
                )

    for clk, dummy in dummies:
        pos = bisect_left(ops, dummy.address, key=_address_key)
        present = pos < len(ops) and ops[pos][1].address == dummy.address
        # A dummy read at an address already in the table is recorded twice.
        copies = 2 if present else 1
        at = bisect_left(ops, (dummy.address, clk), key=_sort_key)
        ops[at:at] = [(clk, dummy)] * copies

    last_clk, last_op = ops[-1]
    padding = MemoryOperation(MemoryOpKind.DUMMY_READ, last_op.address, last_op.value)
    ops.extend([(last_clk, padding)] * (next_power_of_two(len(ops)) - len(ops)))
    ops.sort(key=_sort_key)


def _op_to_row(n: int, clk: int, op: MemoryOperation) -> list[Fp]:
    row = [Fp(0)] * NUM_MEM_COLS
    cols = MEM_COL_MAP
    row[cols.clk] = Fp(clk)
    row[cols.counter] = Fp(n)
    row[cols.addr] = Fp(op.address)
    for column, cell in zip(cols.value, op.value):
        row[column] = Fp(cell)
    if op.kind is MemoryOpKind.READ:
        row[cols.is_read] = Fp(1)
    elif op.kind is MemoryOpKind.WRITE:
        row[cols.is_write] = Fp(1)
    return row


def _compute_address_diffs(ops: list[_Entry], rows: list[list[Fp]]) -> None:
    if not ops:
        return
    height = len(rows)
    diffs = [Fp(0)] * height
    mult = [0] * height
    for i, ((clk, op), (clk_next, op_next)) in enumerate(pairwise(ops)):
        gap = op_next.address - op.address if op_next.address != op.address else clk_next - clk
        if gap >= height:
            raise ValueError(f"memory gap {gap} does not fit a table of {height} rows")
        diffs[i] = Fp(gap)
        mult[gap] += 1

    diff_invs = batch_multiplicative_inverse_allowing_zero(diffs)
    cols = MEM_COL_MAP
    for i, ((_, op), (_, op_next)) in enumerate(pairwise(ops)):
        row = rows[i]
        row[cols.diff] = diffs[i]
        row[cols.diff_inv] = diff_invs[i]
        row[cols.counter_mult] = Fp(mult[i])
        if op_next.address != op.address:
            row[cols.addr_not_equal] = Fp(1)

    # The first row sends a zero diff to the local range check; receive it here.
    rows[0][cols.counter_mult] = rows[0][cols.counter_mult] + 1


@dataclass
class MemoryChip(Chip):
    """Memory cells and the log of operations on them, keyed by clock cycle."""

    cells: dict[int, Word] = field(default_factory=dict)
    operations: dict[int, list[MemoryOperation]] = field(default_factory=dict)

    width: ClassVar[int] = NUM_MEM_COLS

    def read(
        self,
        clk: int,
        address: int,
        log: bool,
        pc: int = 0,
        opcode: int = 0,
        ordinal: int = 0,
        extra_info: str = "",
    ) -> Word:
        """Read a cell; raise KeyError if it was never written."""
        try:
            value = self.cells[address]
        except KeyError:
            raise KeyError(
                f"memory chip: read before write: {address} (pc = {pc}, opcode = {opcode}, "
                f"ordinal = {ordinal}, extra_info = {extra_info})"
            ) from None
        if log:
            self.operations.setdefault(clk, []).append(
                MemoryOperation(MemoryOpKind.READ, address, value)
            )
        return value

    def write(self, clk: int, address: int, value: Word, log: bool) -> None:
        if log:
            self.operations.setdefault(clk, []).append(
                MemoryOperation(MemoryOpKind.WRITE, address, value)
            )
        self.cells[address] = value

    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        ops: list[_Entry] = [
            (clk, op) for clk in sorted(self.operations) for op in self.operations[clk]
        ]
        ops.sort(key=_sort_key)
        _insert_dummy_reads(ops)
        rows = [_op_to_row(n, clk, op) for n, (clk, op) in enumerate(ops)]
        _compute_address_diffs(ops, rows)
        return RowMajorMatrix([value for row in rows for value in row], NUM_MEM_COLS)

    def local_sends(self) -> list[Interaction]:
        return [
            Interaction(
                [VirtualPairCol.single_main(MEM_COL_MAP.diff)],
                VirtualPairCol.one(),
                BusArgument.local(0),
            )
        ]

    def local_receives(self) -> list[Interaction]:
        return [
            Interaction(
                [VirtualPairCol.single_main(MEM_COL_MAP.counter)],
                VirtualPairCol.single_main(MEM_COL_MAP.counter_mult),
                BusArgument.local(0),
            )
        ]

    def global_receives(self, machine: Any) -> list[Interaction]:
        cols = MEM_COL_MAP
        fields_ = [
            VirtualPairCol.single_main(cols.is_read),
            VirtualPairCol.single_main(cols.clk),
            VirtualPairCol.single_main(cols.addr),
            *(VirtualPairCol.single_main(column) for column in cols.value),
        ]
        is_real = VirtualPairCol.sum_main([cols.is_read, cols.is_write])
        return [Interaction(fields_, is_real, machine.mem_bus())]

    def eval(self, builder: AirBuilder) -> None:
        local = _view(builder.main.local)
        nxt = _view(builder.main.next)

        # Flags are boolean.
        builder.assert_bool(local.is_read)
        builder.assert_bool(local.is_write)
        builder.assert_bool(local.is_read + local.is_write)
        builder.assert_bool(local.addr_not_equal)

        addr_delta = nxt.addr - local.addr
        addr_equal = 1 - local.addr_not_equal

        # addr_not_equal is set correctly.
        builder.when_transition().when(local.addr_not_equal).assert_one(
            addr_delta * local.diff_inv
        )
        builder.when_transition().when(addr_equal).assert_zero(addr_delta)

        # diff is the address delta or the clock delta.
        builder.when_transition().when(local.addr_not_equal).assert_eq(local.diff, addr_delta)
        builder.when_transition().when(addr_equal).assert_eq(local.diff, nxt.clk - local.clk)

        # A read sees the previous value at the same address.
        for value_next, value in zip(nxt.value, local.value):
            builder.when_transition().when(nxt.is_read).when(addr_equal).assert_eq(
                value_next, value
            )

        # Reading uninitialized memory is not allowed.
        builder.when(nxt.is_read).assert_zero(addr_delta)

        # The counter increments from zero.
        builder.when_first_row().assert_zero(local.counter)
        builder.when_transition().assert_eq(nxt.counter, local.counter + 1)