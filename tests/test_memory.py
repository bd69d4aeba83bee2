import pytest

from starkvm.air import ConstraintViolation, get_log_quotient_degree
from starkvm.chip import BusArgument, generate_permutation_trace
from starkvm.constraints import check_constraints
from starkvm.field import Fp
from starkvm.memory import MEM_COL_MAP, MemoryChip, MemoryOpKind, MemoryOperation
from starkvm.word import Word

CHALLENGES = [Fp(1234567), Fp(7654321), Fp(99991)]


class FakeMachine:
    def mem_bus(self):
        return BusArgument.global_(0)


MACHINE = FakeMachine()
VALUE = Word.from_u32(0x01020304)


def _write_then_read():
    chip = MemoryChip()
    chip.write(0, 8, VALUE, True)
    assert chip.read(1, 8, True) == VALUE
    return chip


def _check(chip):
    main = chip.generate_trace(MACHINE)
    perm = generate_permutation_trace(MACHINE, chip, main, CHALLENGES)
    return main, check_constraints(MACHINE, chip, main, perm, CHALLENGES)


def test_read_returns_written_value_and_logs():
    chip = _write_then_read()
    assert chip.operations == {
        0: [MemoryOperation(MemoryOpKind.WRITE, 8, VALUE)],
        1: [MemoryOperation(MemoryOpKind.READ, 8, VALUE)],
    }


def test_unlogged_access_records_nothing():
    chip = MemoryChip()
    chip.write(0, 8, VALUE, False)
    assert chip.read(1, 8, False) == VALUE
    assert chip.operations == {}


def test_read_before_write_raises():
    chip = MemoryChip()
    with pytest.raises(KeyError, match="read before write"):
        chip.read(0, 12, True, pc=3, opcode=1)


def test_trace_rows_follow_operations():
    trace = _write_then_read().generate_trace(MACHINE)
    assert trace.height() == 2
    first, second = trace.rows()
    assert first[MEM_COL_MAP.is_write] == Fp(1)
    assert second[MEM_COL_MAP.is_read] == Fp(1)
    assert [second[c] for c in MEM_COL_MAP.value] == [Fp(b) for b in VALUE]
    assert [first[MEM_COL_MAP.counter], second[MEM_COL_MAP.counter]] == [Fp(0), Fp(1)]
    assert first[MEM_COL_MAP.diff] == Fp(1)
    assert first[MEM_COL_MAP.diff] * first[MEM_COL_MAP.diff_inv] == Fp(1)


def test_valid_trace_satisfies_constraints():
    main, result = _check(_write_then_read())
    assert main.height() == 2
    assert result is None


def test_tampered_read_value_is_caught():
    chip = _write_then_read()
    main = chip.generate_trace(MACHINE)
    main.set(1, MEM_COL_MAP.value[3], Fp(99))
    perm = generate_permutation_trace(MACHINE, chip, main, CHALLENGES)
    with pytest.raises(ConstraintViolation):
        check_constraints(MACHINE, chip, main, perm, CHALLENGES)


def test_empty_chip_has_empty_trace():
    assert MemoryChip().generate_trace(MACHINE).height() == 0


def _column(trace, col):
    return [int(row[col]) for row in trace.rows()]


def test_address_gap_gets_dummy_reads():
    chip = MemoryChip()
    chip.write(0, 0, Word.from_u32(5), True)
    chip.write(1, 100, Word.from_u32(6), True)
    main, result = _check(chip)
    height = main.height()
    assert height & (height - 1) == 0
    addrs = _column(main, MEM_COL_MAP.addr)
    clks = _column(main, MEM_COL_MAP.clk)
    assert list(zip(addrs, clks)) == sorted(zip(addrs, clks))
    assert sum(_column(main, MEM_COL_MAP.is_write)) == 2
    assert max(b - a for a, b in zip(addrs, addrs[1:])) <= 2
    assert result is None


def test_clock_gap_gets_dummy_reads():
    chip = MemoryChip()
    chip.write(0, 4, VALUE, True)
    chip.read(10, 4, True)
    main, result = _check(chip)
    clks = _column(main, MEM_COL_MAP.clk)
    assert max(b - a for a, b in zip(clks, clks[1:])) <= 2
    assert sum(_column(main, MEM_COL_MAP.is_read)) == 1
    assert result is None


def test_interactions():
    chip = _write_then_read()
    trace = chip.generate_trace(MACHINE)
    row = trace.row(1)
    (receive,) = chip.global_receives(MACHINE)
    assert [f.apply([], row) for f in receive.fields] == [
        Fp(1), Fp(1), Fp(8), *[Fp(b) for b in VALUE]
    ]
    assert receive.count.apply([], row) == Fp(1)
    assert receive.argument == MACHINE.mem_bus()

    (send,) = chip.local_sends()
    (local_receive,) = chip.local_receives()
    first = trace.row(0)
    assert send.argument == local_receive.argument == BusArgument.local(0)
    assert send.fields[0].apply([], first) == first[MEM_COL_MAP.diff]
    assert local_receive.count.apply([], first) == first[MEM_COL_MAP.counter_mult]


def test_log_quotient_degree():
    assert get_log_quotient_degree(MACHINE, MemoryChip()) == 1