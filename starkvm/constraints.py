"""Debug checks that a chip's traces satisfy its constraints."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from starkvm.air import ConstraintViolation, DebugConstraintBuilder, TwoRowView
from starkvm.chip import Chip, eval_permutation_constraints
from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix


def _windows(matrix: RowMajorMatrix | None, height: int) -> list[TwoRowView]:
    """Each row paired with the following one, the last wrapping to the first."""
    if matrix is None:
        return [TwoRowView((), ()) for _ in range(height)]
    rows = list(matrix.rows())
    return [TwoRowView(local, following) for local, following in zip(rows, rows[1:] + rows[:1])]


def check_constraints(
    machine: Any,
    air: Chip,
    main: RowMajorMatrix,
    perm: RowMajorMatrix,
    perm_challenges: Sequence[Fp],
) -> None:
    """Check that every constraint of the chip vanishes on every row.

    Raises ConstraintViolation, naming the row, at the first failing constraint.
    """
    if main.height() != perm.height():
        raise ValueError(
            f"main trace has {main.height()} rows but permutation trace has {perm.height()}"
        )
    height = main.height()
    if height == 0:
        return

    cumulative_sum = perm.row(height - 1)[-1]
    challenges = list(perm_challenges)
    windows = zip(
        _windows(main, height),
        _windows(air.preprocessed_trace(), height),
        _windows(perm, height),
    )
    for i, (main_view, pre_view, perm_view) in enumerate(windows):
        is_last = i == height - 1
        builder = DebugConstraintBuilder(
            machine=machine,
            main=main_view,
            preprocessed=pre_view,
            permutation=perm_view,
            permutation_randomness=challenges,
            is_first_row=Fp(1 if i == 0 else 0),
            is_last_row=Fp(1 if is_last else 0),
            is_transition=Fp(0 if is_last else 1),
        )
        try:
            air.eval(builder)
            eval_permutation_constraints(air, builder, cumulative_sum)
        except ConstraintViolation as exc:
            raise ConstraintViolation(f"row {i}: {exc}") from exc


def check_cumulative_sums(perms: Sequence[RowMajorMatrix]) -> None:
    """Check that the cumulative sums of all permutation traces add up to zero."""
    total = sum((perm.row(perm.height() - 1)[-1] for perm in perms), Fp(0))
    if not Fp(total).is_zero():
        raise ConstraintViolation(
            f"cumulative sums across lookup tables add up to {int(total)}, not zero"
        )