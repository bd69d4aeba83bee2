"""Symbolic variables and expressions used to inspect constraints without evaluating them."""

from __future__ import annotations

import operator
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import reduce
from typing import Any

from starkvm.field import Fp
from starkvm.matrix import RowMajorMatrix


class Trace(Enum):
    """The trace a symbolic variable refers to."""

    PREPROCESSED = "preprocessed"
    MAIN = "main"
    PERMUTATION = "permutation"


@dataclass(frozen=True)
class SymbolicVariable:
    """A column in either the local or the next row of the evaluation window."""

    trace: Trace
    is_next: bool
    column: int
    extension: bool = False

    @classmethod
    def window(cls, trace: Trace, width: int) -> RowMajorMatrix:
        """A two-row matrix of variables: the local row, then the next row."""
        values = [
            cls(trace, is_next, column)
            for is_next in (False, True)
            for column in range(width)
        ]
        return RowMajorMatrix(values, width)

    def to_ext(self) -> SymbolicVariable:
        """The same column, viewed as a variable over the extension field."""
        return replace(self, extension=True)

    def _expr(self) -> SymbolicExpression:
        return SymbolicExpression.variable(self)

    def __add__(self, other: Any) -> Any:
        return self._expr() + other

    def __radd__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else lhs + self._expr()

    def __sub__(self, other: Any) -> Any:
        return self._expr() - other

    def __rsub__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else lhs - self._expr()

    def __mul__(self, other: Any) -> Any:
        return self._expr() * other

    def __rmul__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else lhs * self._expr()

    def __neg__(self) -> SymbolicExpression:
        return -self._expr()


class ExprKind(Enum):
    """The node types of a symbolic expression."""

    VARIABLE = "variable"
    IS_FIRST_ROW = "is_first_row"
    IS_LAST_ROW = "is_last_row"
    IS_TRANSITION = "is_transition"
    CONSTANT = "constant"
    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    MUL = "mul"


_ARITY = {
    ExprKind.VARIABLE: 0,
    ExprKind.IS_FIRST_ROW: 0,
    ExprKind.IS_LAST_ROW: 0,
    ExprKind.IS_TRANSITION: 0,
    ExprKind.CONSTANT: 0,
    ExprKind.ADD: 2,
    ExprKind.SUB: 2,
    ExprKind.NEG: 1,
    ExprKind.MUL: 2,
}


@dataclass(frozen=True)
class SymbolicExpression:
    """An expression tree over symbolic variables and constants."""

    kind: ExprKind = ExprKind.CONSTANT
    operands: tuple[SymbolicExpression, ...] = ()
    value: Any = None
    _degree: int = field(init=False, repr=False, compare=False, default=0)

    def __post_init__(self) -> None:
        operands = tuple(self.operands)
        object.__setattr__(self, "operands", operands)
        if len(operands) != _ARITY[self.kind]:
            raise ValueError(
                f"{self.kind.value} takes {_ARITY[self.kind]} operands, got {len(operands)}"
            )
        if self.kind is ExprKind.VARIABLE and not isinstance(self.value, SymbolicVariable):
            raise TypeError("a variable expression needs a SymbolicVariable")
        if self.kind is ExprKind.CONSTANT and self.value is None:
            object.__setattr__(self, "value", Fp(0))
        object.__setattr__(self, "_degree", self._compute_degree())

    def _compute_degree(self) -> int:
        kind = self.kind
        if kind in (ExprKind.VARIABLE, ExprKind.IS_FIRST_ROW, ExprKind.IS_LAST_ROW):
            return 1
        if kind in (ExprKind.IS_TRANSITION, ExprKind.CONSTANT):
            return 0
        if kind is ExprKind.NEG:
            return self.operands[0].degree_multiple()
        if kind is ExprKind.MUL:
            return sum(op.degree_multiple() for op in self.operands)
        return max(op.degree_multiple() for op in self.operands)

    def degree_multiple(self) -> int:
        """The multiple of the trace length in this expression's degree."""
        return self._degree

    @classmethod
    def constant(cls, value: Any) -> SymbolicExpression:
        if isinstance(value, int) and not isinstance(value, Fp):
            value = Fp(value)
        return cls(ExprKind.CONSTANT, (), value)

    @classmethod
    def variable(cls, var: SymbolicVariable) -> SymbolicExpression:
        return cls(ExprKind.VARIABLE, (), var)

    @classmethod
    def zero(cls) -> SymbolicExpression:
        return cls.constant(Fp(0))

    @classmethod
    def one(cls) -> SymbolicExpression:
        return cls.constant(Fp(1))

    @classmethod
    def sum(cls, items: Iterable[Any]) -> SymbolicExpression:
        """Left-to-right sum of the items; zero when there are none."""
        return reduce(operator.add, (_require_expression(i) for i in items), cls.zero())
        # unreachable

    @classmethod
    def product(cls, items: Iterable[Any]) -> SymbolicExpression:
        """Left-to-right product of the items; one when there are none."""
        exprs = [_require_expression(i) for i in items]
        if not exprs:
            return cls.one()
        return reduce(operator.mul, exprs)

    def __add__(self, other: Any) -> Any:
        rhs = _as_expression(other)
        return NotImplemented if rhs is None else SymbolicExpression(ExprKind.ADD, (self, rhs))

    def __radd__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else SymbolicExpression(ExprKind.ADD, (lhs, self))

    def __sub__(self, other: Any) -> Any:
        rhs = _as_expression(other)
        return NotImplemented if rhs is None else SymbolicExpression(ExprKind.SUB, (self, rhs))

    def __rsub__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else SymbolicExpression(ExprKind.SUB, (lhs, self))

    def __mul__(self, other: Any) -> Any:
        rhs = _as_expression(other)
        return NotImplemented if rhs is None else SymbolicExpression(ExprKind.MUL, (self, rhs))

    def __rmul__(self, other: Any) -> Any:
        lhs = _as_expression(other)
        return NotImplemented if lhs is None else SymbolicExpression(ExprKind.MUL, (lhs, self))

    def __neg__(self) -> SymbolicExpression:
        return SymbolicExpression(ExprKind.NEG, (self,))


IS_FIRST_ROW = SymbolicExpression(ExprKind.IS_FIRST_ROW)
IS_LAST_ROW = SymbolicExpression(ExprKind.IS_LAST_ROW)
IS_TRANSITION = SymbolicExpression(ExprKind.IS_TRANSITION)


def _as_expression(value: Any) -> SymbolicExpression | None:
    if isinstance(value, SymbolicExpression):
        return value
    if isinstance(value, SymbolicVariable):
        return SymbolicExpression.variable(value)
    if isinstance(value, (Fp, int)):
        return SymbolicExpression.constant(value)
    return None


def _require_expression(value: Any) -> SymbolicExpression:
    expr = _as_expression(value)
    if expr is None:
        raise TypeError(f"cannot use {type(value).__name__} in a symbolic expression")
    return expr


def _lift(expr: SymbolicExpression) -> SymbolicExpression:
    if expr.kind is ExprKind.VARIABLE:
        return SymbolicExpression.variable(expr.value.to_ext())
    if not expr.operands:
        return expr
    return SymbolicExpression(expr.kind, tuple(_lift(op) for op in expr.operands))


@dataclass(frozen=True)
class SymbolicExpressionExt:
    """A symbolic expression over the extension field."""

    inner: SymbolicExpression = field(default_factory=SymbolicExpression.zero)

    @classmethod
    def from_base(cls, expr: Any) -> SymbolicExpressionExt:
        """Embed a base-field expression, turning its variables into extension variables."""
        return cls(_lift(_require_expression(expr)))

    @classmethod
    def zero(cls) -> SymbolicExpressionExt:
        return cls(SymbolicExpression.zero())

    @classmethod
    def one(cls) -> SymbolicExpressionExt:
        return cls(SymbolicExpression.one())

    def __add__(self, other: Any) -> Any:
        rhs = _as_ext(other)
        return NotImplemented if rhs is None else SymbolicExpressionExt(self.inner + rhs.inner)

    def __radd__(self, other: Any) -> Any:
        lhs = _as_ext(other)
        return NotImplemented if lhs is None else SymbolicExpressionExt(lhs.inner + self.inner)

    def __sub__(self, other: Any) -> Any:
        rhs = _as_ext(other)
        return NotImplemented if rhs is None else SymbolicExpressionExt(self.inner - rhs.inner)

    def __rsub__(self, other: Any) -> Any:
        lhs = _as_ext(other)
        return NotImplemented if lhs is None else SymbolicExpressionExt(lhs.inner - self.inner)

    def __mul__(self, other: Any) -> Any:
        rhs = _as_ext(other)
        return NotImplemented if rhs is None else SymbolicExpressionExt(self.inner * rhs.inner)

    def __rmul__(self, other: Any) -> Any:
        lhs = _as_ext(other)
        return NotImplemented if lhs is None else SymbolicExpressionExt(lhs.inner * self.inner)

    def __neg__(self) -> SymbolicExpressionExt:
        return SymbolicExpressionExt(-self.inner)


def _as_ext(value: Any) -> SymbolicExpressionExt | None:
    if isinstance(value, SymbolicExpressionExt):
        return value
    if isinstance(value, (SymbolicExpression, SymbolicVariable)):
        return SymbolicExpressionExt.from_base(value)
    if isinstance(value, (Fp, int)):
        return SymbolicExpressionExt(SymbolicExpression.constant(value))
    return None