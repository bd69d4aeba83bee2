"""Arithmetic in the prime field that trace values live in."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

MODULUS = 2013265921  # 15 * 2**27 + 1


@dataclass(frozen=True, slots=True, eq=False)
class Fp:
    """An element of the prime field of order MODULUS."""

    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", int(self.value) % MODULUS)

    @classmethod
    def from_signed(cls, value: int) -> Fp:
        """Map a signed integer to the field, negatives to their additive inverse."""
        magnitude = cls(abs(value))
        return -magnitude if value < 0 else magnitude

    @staticmethod
    def _coerce(other: object) -> int | None:
        if isinstance(other, Fp):
            return other.value
        if isinstance(other, int):
            return other % MODULUS
        return None

    def is_zero(self) -> bool:
        return self.value == 0

    def inverse(self) -> Fp:
        """Multiplicative inverse; zero has none."""
        if self.value == 0:
            raise ZeroDivisionError("zero has no multiplicative inverse")
        return Fp(pow(self.value, MODULUS - 2, MODULUS))

    def powers(self) -> Iterator[Fp]:
        """Yield 1, self, self**2, ... without end."""
        current = Fp(1)
        while True:
            yield current
            current = current * self

    def __add__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else Fp(self.value + value)

    __radd__ = __add__

    def __sub__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else Fp(self.value - value)

    def __rsub__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else Fp(value - self.value)

    def __mul__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else Fp(self.value * value)

    __rmul__ = __mul__

    def __truediv__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else self * Fp(value).inverse()

    def __rtruediv__(self, other: object) -> Fp:
        value = self._coerce(other)
        return NotImplemented if value is None else Fp(value) * self.inverse()

    def __neg__(self) -> Fp:
        return Fp(-self.value)

    def __pow__(self, exponent: int) -> Fp:
        if exponent < 0:
            return self.inverse() ** -exponent
        return Fp(pow(self.value, exponent, MODULUS))

    def __eq__(self, other: object) -> bool:
        value = self._coerce(other)
        return NotImplemented if value is None else self.value == value

    def __hash__(self) -> int:
        return hash(self.value)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __bool__(self) -> bool:
        return self.value != 0

    def __repr__(self) -> str:
        return f"Fp({self.value})"


def batch_multiplicative_inverse_allowing_zero(values: Iterable[Fp]) -> list[Fp]:
    """Invert every element, leaving zeros as zero."""
    return [value if value.is_zero() else value.inverse() for value in values]


def next_power_of_two(n: int) -> int:
    """Smallest power of two that is at least n (1 for n == 0)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()