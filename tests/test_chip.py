import pytest

from starkvm.air import ConstraintViolation, DebugConstraintBuilder, TwoRowView
from starkvm.chip import (
    BusArgument,
    Chip,
    Interaction,
    InteractionType,
    VirtualPairCol,
    eval_permutation_constraints,
    generate_permutation_trace,
)
from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix

CHALLENGES = [Fp(3), Fp(5), Fp(7)]


def _matrix(pairs):
    return RowMajorMatrix([Fp(v) for pair in pairs for v in pair], 2)


class _PairChip(Chip):
    """Sends column 0 and receives column 1 on a local bus."""

    width = 2

    def __init__(self, trace):
        self.trace = trace

    def generate_trace(self, machine):
        return self.trace

    def eval(self, builder):
        pass

    def local_sends(self):
        return [Interaction([VirtualPairCol.single_main(0)], VirtualPairCol.one(), BusArgument.local(0))]

    def local_receives(self):
        return [Interaction([VirtualPairCol.single_main(1)], VirtualPairCol.one(), BusArgument.local(0))]


class _PreprocessedChip(Chip):
    width = 1

    def __init__(self, fixed, trace):
        self.fixed = fixed
        self.trace = trace

    def generate_trace(self, machine):
        return self.trace

    def preprocessed_trace(self):
        return self.fixed

    def eval(self, builder):
        pass

    def local_sends(self):
        return [Interaction([VirtualPairCol.single_preprocessed(0)], VirtualPairCol.one(), BusArgument.local(0))]

    def local_receives(self):
        return [Interaction([VirtualPairCol.single_main(0)], VirtualPairCol.one(), BusArgument.local(0))]


class _MinimalChip(Chip):
    width = 1

    def generate_trace(self, machine):
        return RowMajorMatrix([Fp(0)], 1)

    def eval(self, builder):
        pass


class _AllKindsChip(Chip):
    width = 1

    def generate_trace(self, machine):
        return RowMajorMatrix([Fp(0)], 1)

    def eval(self, builder):
        pass

    def _one(self, bus):
        return [Interaction([VirtualPairCol.single_main(0)], VirtualPairCol.one(), bus)]

    def local_sends(self):
        return self._one(BusArgument.local(0))

    def local_receives(self):
        return self._one(BusArgument.local(1))

    def global_sends(self, machine):
        return self._one(BusArgument.global_(2))

    def global_receives(self, machine):
        return self._one(BusArgument.global_(3))


def _check_rows(chip, main, perm, preprocessed=None):
    height = main.height()
    cumulative = perm.row(height - 1)[-1]
    for i in range(height):
        nxt = (i + 1) % height
        pre = (
            TwoRowView(preprocessed.row(i), preprocessed.row(nxt))
            if preprocessed is not None
            else TwoRowView()
        )
        builder = DebugConstraintBuilder(
            machine=None,
            main=TwoRowView(main.row(i), main.row(nxt)),
            preprocessed=pre,
            permutation=TwoRowView(perm.row(i), perm.row(nxt)),
            permutation_randomness=CHALLENGES,
            is_first_row=Fp(i == 0),
            is_last_row=Fp(i == height - 1),
            is_transition=Fp(i != height - 1),
        )
        eval_permutation_constraints(chip, builder, cumulative)
    return cumulative


def test_virtual_pair_col_single_main():
    assert VirtualPairCol.single_main(1).apply([], [Fp(5), Fp(7)]) == Fp(7)


def test_virtual_pair_col_single_preprocessed():
    assert VirtualPairCol.single_preprocessed(0).apply([Fp(9)], [Fp(1)]) == Fp(9)


def test_virtual_pair_col_sum_and_weights():
    row = [Fp(5), Fp(7)]
    assert VirtualPairCol.sum_main([0, 1]).apply([], row) == Fp(5) + Fp(7)
    combo = VirtualPairCol.new_main([(0, 2), (1, 3)], 4)
    assert combo.apply([], row) == Fp(2) * Fp(5) + Fp(3) * Fp(7) + Fp(4)


def test_virtual_pair_col_constants():
    assert VirtualPairCol.one().apply([], []) == Fp(1)
    assert VirtualPairCol.constant(42).apply([], [Fp(3)]) == Fp(42)


def test_bus_argument_local_sorts_before_global():
    args = [BusArgument.global_(0), BusArgument.local(5), BusArgument.local(1)]
    assert sorted(args) == [BusArgument.local(1), BusArgument.local(5), BusArgument.global_(0)]


def test_interaction_bus_queries():
    interaction = Interaction([], VirtualPairCol.one(), BusArgument.global_(4))
    assert interaction.is_global()
    assert not interaction.is_local()
    assert interaction.argument_index() == 4


def test_all_interactions_order():
    interactions = Chip.all_interactions(_AllKindsChip(), None)
    kinds = [kind for _, kind in interactions]
    assert kinds == [
        InteractionType.LOCAL_SEND,
        InteractionType.LOCAL_RECEIVE,
        InteractionType.GLOBAL_SEND,
        InteractionType.GLOBAL_RECEIVE,
    ]
    indices = [i.argument_index() for i, _ in interactions]
    assert indices == [0, 1, 2, 3]
    assert [i.is_local() for i, _ in interactions] == [True, True, False, False]


def test_default_chip_has_no_interactions():
    chip = _MinimalChip()
    assert Chip.local_sends(chip) == []
    assert Chip.local_receives(chip) == []
    assert Chip.global_sends(chip, None) == []
    assert Chip.global_receives(chip, None) == []
    assert Chip.all_interactions(chip, None) == []
    assert Chip.preprocessed_trace(chip) is None


def test_permutation_trace_shape_and_reciprocals():
    main = _matrix([(1, 2), (2, 4), (4, 1), (5, 5)])
    perm = generate_permutation_trace(None, _PairChip(main), main, CHALLENGES)
    assert perm.width == 3
    assert perm.height() == main.height()
    alpha = CHALLENGES[0]
    for main_row, perm_row in zip(main.rows(), perm.rows()):
        assert perm_row[0] * (alpha + main_row[0]) == Fp(1)
        assert perm_row[1] * (alpha + main_row[1]) == Fp(1)


def test_permutation_cumulative_sum_zero_and_constraints_hold():
    main = _matrix([(1, 2), (2, 4), (4, 1), (5, 5)])
    chip = _PairChip(main)
    perm = generate_permutation_trace(None, chip, main, CHALLENGES)
    assert _check_rows(chip, main, perm) == Fp(0)


def test_running_sum_is_sends_minus_receives():
    main = _matrix([(1, 2), (3, 4)])
    perm = generate_permutation_trace(None, _PairChip(main), main, CHALLENGES)
    expected = Fp(0)
    for row in perm.rows():
        expected = expected + row[0] - row[1]
    assert perm.row(perm.height() - 1)[-1] == expected
    assert not expected.is_zero()


def test_tampered_permutation_trace_is_rejected():
    main = _matrix([(1, 2), (2, 4), (4, 1), (5, 5)])
    chip = _PairChip(main)
    perm = generate_permutation_trace(None, chip, main, CHALLENGES)
    perm.set(1, 0, perm.row(1)[0] + Fp(1))
    with pytest.raises(ConstraintViolation):
        _check_rows(chip, main, perm)


def test_preprocessed_columns_take_part():
    fixed = RowMajorMatrix.new_col([Fp(v) for v in (6, 8, 9, 11)])
    main = RowMajorMatrix.new_col([Fp(v) for v in (11, 9, 8, 6)])
    chip = _PreprocessedChip(fixed, main)
    perm = generate_permutation_trace(None, chip, main, CHALLENGES)
    assert _check_rows(chip, main, perm, fixed) == Fp(0)