import pytest

from starkvm.air import (
    ConstraintViolation,
    DebugConstraintBuilder,
    ProverConstraintFolder,
    TwoRowView,
    get_symbolic_constraints,
)
from starkvm.chip import BusArgument
from starkvm.field import Fp
from starkvm.opcodes import WRITE
from starkvm.output import NUM_OUTPUT_COLS, OUTPUT_COL_MAP, OutputChip
from starkvm.word import CPU_MEMORY_CHANNELS, MEMORY_CELL_BYTES


class _Machine:
    def general_bus(self):
        return BusArgument.global_(1)


def _row(**values):
    row = [Fp(0)] * NUM_OUTPUT_COLS
    for name, value in values.items():
        row[getattr(OUTPUT_COL_MAP, name)] = Fp(value)
    return row


def test_bytes_lists_written_bytes():
    chip = OutputChip([(3, 72), (9, 105)])
    assert chip.bytes() == b"Hi"


def test_empty_trace_is_one_zero_row():
    trace = OutputChip().generate_trace(_Machine())
    assert trace.width == NUM_OUTPUT_COLS
    assert trace.height() == 1
    assert all(v.is_zero() for v in trace.values)


def test_single_value_row():
    trace = OutputChip([(5, 65)]).generate_trace(_Machine())
    row = trace.row(0)
    assert row[OUTPUT_COL_MAP.clk] == Fp(5)
    assert row[OUTPUT_COL_MAP.value] == Fp(65)
    assert row[OUTPUT_COL_MAP.is_real] == Fp(1)


@pytest.mark.parametrize(
    "values",
    [
        [(0, 10), (1, 20)],
        [(0, 10), (5, 20)],
        [(2, 1), (3, 2), (40, 3)],
    ],
)
def test_trace_invariants(values):
    chip = OutputChip(list(values))
    trace = chip.generate_trace(_Machine())
    height = trace.height()
    assert height & (height - 1) == 0
    rows = list(trace.rows())
    real = [row for row in rows if row[OUTPUT_COL_MAP.is_real] == Fp(1)]
    assert len(real) == len(values)
    assert [row[OUTPUT_COL_MAP.value] for row in real] == [Fp(b) for _, b in values]
    assert [row[OUTPUT_COL_MAP.clk] for row in real] == [Fp(c) for c, _ in values]
    last_real = max(i for i, row in enumerate(rows) if row[OUTPUT_COL_MAP.is_real] == Fp(1))
    for row, row_next in zip(rows[:last_real], rows[1 : last_real + 1]):
        assert row[OUTPUT_COL_MAP.diff] == row_next[OUTPUT_COL_MAP.clk] - row[OUTPUT_COL_MAP.clk]


def test_large_gap_adds_dummy_rows():
    trace = OutputChip([(0, 10), (100, 20)]).generate_trace(_Machine())
    rows = list(trace.rows())
    dummies = [
        row
        for row in rows
        if row[OUTPUT_COL_MAP.is_real].is_zero() and not row[OUTPUT_COL_MAP.clk].is_zero()
    ]
    assert dummies
    assert all(row[OUTPUT_COL_MAP.value].is_zero() for row in dummies)


def test_decreasing_clock_raises():
    with pytest.raises(ValueError):
        OutputChip([(5, 1), (2, 2)]).generate_trace(_Machine())


def test_global_receives_layout():
    (interaction,) = OutputChip().global_receives(_Machine())
    assert interaction.argument == _Machine().general_bus()
    assert len(interaction.fields) == CPU_MEMORY_CHANNELS * MEMORY_CELL_BYTES + 2
    row = _row(clk=7, value=33, is_real=1, opcode=WRITE)
    applied = [f.apply([], row) for f in interaction.fields]
    assert applied[0] == row[OUTPUT_COL_MAP.opcode]
    assert applied[MEMORY_CELL_BYTES] == row[OUTPUT_COL_MAP.value]
    assert applied[-1] == row[OUTPUT_COL_MAP.clk]
    others = applied[1:MEMORY_CELL_BYTES] + applied[MEMORY_CELL_BYTES + 1 : -1]
    assert all(v.is_zero() for v in others)
    assert interaction.count.apply([], row) == row[OUTPUT_COL_MAP.is_real]


def test_eval_accepts_consistent_rows():
    local = _row(clk=2, value=9, is_real=1, diff=3, counter=0, opcode=WRITE)
    nxt = _row(clk=5, value=8, is_real=1, counter=1, opcode=WRITE)
    folder = ProverConstraintFolder(machine=None, main=TwoRowView(local, nxt), alpha=Fp(3))
    OutputChip().eval(folder)
    assert folder.accumulator.is_zero()


def test_eval_rejects_missing_opcode():
    local = _row(clk=2, value=9, is_real=1, diff=3, counter=0)
    nxt = _row(clk=5, counter=1)
    builder = DebugConstraintBuilder(machine=None, main=TwoRowView(local, nxt))
    with pytest.raises(ConstraintViolation):
        OutputChip().eval(builder)


def test_eval_rejects_wrong_diff():
    local = _row(clk=2, diff=4, counter=0)
    nxt = _row(clk=5, counter=1)
    builder = DebugConstraintBuilder(machine=None, main=TwoRowView(local, nxt))
    with pytest.raises(ConstraintViolation):
        OutputChip().eval(builder)


def test_eval_has_three_constraints():
    assert len(get_symbolic_constraints(_Machine(), OutputChip())) == 3