"""Constraint builders: symbolic recording, debug checking and prover folding."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from starkvm.field import Fp
from starkvm.symbolic import (
    IS_FIRST_ROW,
    IS_LAST_ROW,
    IS_TRANSITION,
    SymbolicExpression,
    SymbolicExpressionExt,
    SymbolicVariable,
    Trace,
)


class ConstraintViolation(AssertionError):
    """A constraint did not evaluate to zero."""


@dataclass(frozen=True)
class TwoRowView:
    """The local row and the next row of a trace."""

    local: Sequence[Any] = ()
    next: Sequence[Any] = ()


class AirBuilder(ABC):
    """Receives the constraints of an AIR.

    Concrete builders expose the evaluation window as attributes: ``machine``,
    ``main``, ``preprocessed``, ``permutation``, ``permutation_randomness``,
    ``is_first_row``, ``is_last_row`` and ``is_transition``.
    """

    machine: Any
    main: TwoRowView
    preprocessed: TwoRowView
    permutation: TwoRowView
    permutation_randomness: Sequence[Any]
    is_first_row: Any
    is_last_row: Any
    is_transition: Any

    def when(self, condition: Any) -> AirBuilder:
        """A builder whose constraints only apply where the condition is nonzero."""
        return _FilteredAirBuilder(self, condition)

    def when_first_row(self) -> AirBuilder:
        return self.when(self.is_first_row)

    def when_last_row(self) -> AirBuilder:
        return self.when(self.is_last_row)

    def when_transition(self) -> AirBuilder:
        return self.when(self.is_transition)

    @abstractmethod
    def assert_zero(self, x: Any) -> None:
        """Constrain x to be zero."""

    def assert_one(self, x: Any) -> None:
        self.assert_zero(x - 1)

    def assert_eq(self, x: Any, y: Any) -> None:
        self.assert_zero(x - y)

    def assert_bool(self, x: Any) -> None:
        self.assert_zero(x * (x - 1))


class _FilteredAirBuilder(AirBuilder):
    """Multiplies every constraint by a condition before passing it on."""

    def __init__(self, inner: AirBuilder, condition: Any) -> None:
        self._inner = inner
        self._condition = condition

    @property
    def machine(self) -> Any:  # type: ignore[override]
        return self._inner.machine

    @property
    def main(self) -> TwoRowView:  # type: ignore[override]
        return self._inner.main

    @property
    def preprocessed(self) -> TwoRowView:  # type: ignore[override]
        return self._inner.preprocessed

    @property
    def permutation(self) -> TwoRowView:  # type: ignore[override]
        return self._inner.permutation

    @property
    def permutation_randomness(self) -> Sequence[Any]:  # type: ignore[override]
        return self._inner.permutation_randomness

    @property
    def is_first_row(self) -> Any:  # type: ignore[override]
        return self._inner.is_first_row

    @property
    def is_last_row(self) -> Any:  # type: ignore[override]
        return self._inner.is_last_row

    @property
    def is_transition(self) -> Any:  # type: ignore[override]
        return self._inner.is_transition

    def assert_zero(self, x: Any) -> None:
        self._inner.assert_zero(self._condition * x)


@dataclass
class DebugConstraintBuilder(AirBuilder):
    """Checks each constraint on concrete values as soon as it is asserted."""

    machine: Any
    main: TwoRowView
    preprocessed: TwoRowView = field(default_factory=TwoRowView)
    permutation: TwoRowView = field(default_factory=TwoRowView)
    permutation_randomness: Sequence[Any] = ()
    is_first_row: Fp = field(default_factory=lambda: Fp(0))
    is_last_row: Fp = field(default_factory=lambda: Fp(0))
    is_transition: Fp = field(default_factory=lambda: Fp(1))

    def assert_zero(self, x: Any) -> None:
        value = x if isinstance(x, Fp) else Fp(x)
        if not value.is_zero():
            raise ConstraintViolation(
                f"constraints must evaluate to zero, got {value.value}"
            )


@dataclass
class ProverConstraintFolder(AirBuilder):
    """Folds all constraints into one accumulator with powers of alpha."""

    machine: Any
    main: TwoRowView
    alpha: Fp
    preprocessed: TwoRowView = field(default_factory=TwoRowView)
    permutation: TwoRowView = field(default_factory=TwoRowView)
    permutation_randomness: Sequence[Any] = ()
    is_first_row: Fp = field(default_factory=lambda: Fp(0))
    is_last_row: Fp = field(default_factory=lambda: Fp(0))
    is_transition: Fp = field(default_factory=lambda: Fp(1))
    accumulator: Fp = field(default_factory=lambda: Fp(0))

    def assert_zero(self, x: Any) -> None:
        self.accumulator = self.accumulator * self.alpha + x


def _window(trace: Trace, width: int) -> TwoRowView:
    if width <= 0:
        return TwoRowView((), ())
    local, following = SymbolicVariable.window(trace, width).rows()
    return TwoRowView(tuple(local), tuple(following))


class SymbolicAirBuilder(AirBuilder):
    """Records constraints as symbolic expressions."""

    def __init__(self, machine: Any, width: int) -> None:
        self.machine = machine
        self.preprocessed = _window(Trace.PREPROCESSED, width)
        self.main = _window(Trace.MAIN, width)
        self.permutation = _window(Trace.PERMUTATION, width)
        self.permutation_randomness = ()
        self.is_first_row = IS_FIRST_ROW
        self.is_last_row = IS_LAST_ROW
        self.is_transition = IS_TRANSITION
        self.constraints: list[SymbolicExpression] = []

    def assert_zero(self, x: Any) -> None:
        if isinstance(x, SymbolicExpressionExt):
            expr = x.inner
        elif isinstance(x, SymbolicExpression):
            expr = x
        elif isinstance(x, SymbolicVariable):
            expr = SymbolicExpression.variable(x)
        elif isinstance(x, (Fp, int)):
            expr = SymbolicExpression.constant(x)
        else:
            raise TypeError(f"cannot record {type(x).__name__} as a constraint")
        self.constraints.append(expr)


def get_symbolic_constraints(machine: Any, air: Any) -> list[SymbolicExpression]:
    """Evaluate an AIR symbolically and return its constraints."""
    builder = SymbolicAirBuilder(machine, air.width)
    air.eval(builder)
    return builder.constraints


def get_max_constraint_degree(machine: Any, air: Any) -> int:
    """The largest degree multiple among the AIR's constraints, 0 if there are none."""
    return max(
        (c.degree_multiple() for c in get_symbolic_constraints(machine, air)),
        default=0,
    )


def get_log_quotient_degree(machine: Any, air: Any) -> int:
    """Log2 of the quotient degree, padded to a power of two."""
    # A quotient argument needs at least degree 2.
    constraint_degree = max(get_max_constraint_degree(machine, air), 2)
    return (constraint_degree - 2).bit_length()