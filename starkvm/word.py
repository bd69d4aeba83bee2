"""Four-cell machine words, stored big-endian."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from starkvm.field import Fp

OPERAND_ELEMENTS = 5
INSTRUCTION_ELEMENTS = OPERAND_ELEMENTS + 1
CPU_MEMORY_CHANNELS = 3
MEMORY_CELL_BYTES = 4
LOOKUP_DEGREE_BOUND = 3

_MASK = 0xFFFFFFFF
_I32_MIN = -(1 << 31)


def _signed(value: int) -> int:
    return value - (1 << 32) if value & 0x80000000 else value


@dataclass(frozen=True, order=True)
class Word:
    """A memory cell of MEMORY_CELL_BYTES entries, most significant first.

    Entries are bytes for machine values, but may be field elements or
    column indices when a word describes trace columns.
    """

    cells: tuple[Any, ...] = (0,) * MEMORY_CELL_BYTES

    def __post_init__(self) -> None:
        cells = tuple(self.cells)
        if len(cells) != MEMORY_CELL_BYTES:
            raise ValueError(f"a word holds exactly {MEMORY_CELL_BYTES} cells")
        object.__setattr__(self, "cells", cells)

    @classmethod
    def from_u8(cls, byte: int) -> Word:
        return cls((0,) * (MEMORY_CELL_BYTES - 1) + (byte & 0xFF,))

    @classmethod
    def from_u32(cls, value: int) -> Word:
        value &= _MASK
        return cls(tuple(value.to_bytes(MEMORY_CELL_BYTES, "big")))

    def to_u32(self) -> int:
        return int.from_bytes(bytes(self.cells), "big")

    def transform(self, func: Callable[[Any], Any]) -> Word:
        return Word(tuple(func(cell) for cell in self.cells))

    def reduce(self) -> Fp:
        """Combine the cells into one field element, base 256."""
        result = Fp(0)
        for n, cell in enumerate(reversed(self.cells)):
            result = result + Fp(1 << (8 * n)) * cell
        return result

    def __getitem__(self, index: int) -> Any:
        return self.cells[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.cells)

    def __len__(self) -> int:
        return MEMORY_CELL_BYTES

    def __add__(self, other: Word) -> Word:
        return Word.from_u32(self.to_u32() + other.to_u32())

    def __sub__(self, other: Word) -> Word:
        return Word.from_u32(self.to_u32() - other.to_u32())

    def __mul__(self, other: Word) -> Word:
        return Word.from_u32(self.to_u32() * other.to_u32())

    def __floordiv__(self, other: Word) -> Word:
        divisor = other.to_u32()
        if divisor == 0:
            raise ZeroDivisionError("word division by zero")
        return Word.from_u32(self.to_u32() // divisor)

    def __lshift__(self, other: Word) -> Word:
        return Word.from_u32(self.to_u32() << (other.to_u32() & 31))

    def __rshift__(self, other: Word) -> Word:
        return Word.from_u32(self.to_u32() >> (other.to_u32() & 31))

    def __xor__(self, other: Word) -> Word:
        return Word(tuple(a ^ b for a, b in zip(self.cells, other.cells)))

    def __and__(self, other: Word) -> Word:
        return Word(tuple(a & b for a, b in zip(self.cells, other.cells)))

    def __or__(self, other: Word) -> Word:
        return Word(tuple(a | b for a, b in zip(self.cells, other.cells)))

    def mulhs(self, other: Word) -> Word:
        """High half of the product, computed in 64-bit two's complement."""
        product = self.to_u32() * other.to_u32()
        product = ((product + (1 << 63)) % (1 << 64)) - (1 << 63)
        return Word.from_u32(product >> 32)

    def mulhu(self, other: Word) -> Word:
        """High half of the unsigned 64-bit product."""
        return Word.from_u32((self.to_u32() * other.to_u32()) >> 32)

    def sdiv(self, other: Word) -> Word:
        """Signed division, truncating toward zero."""
        b, c = _signed(self.to_u32()), _signed(other.to_u32())
        if c == 0:
            raise ZeroDivisionError("word division by zero")
        if b == _I32_MIN and c == -1:
            raise OverflowError("signed division overflow")
        quotient = abs(b) // abs(c)
        if (b < 0) != (c < 0):
            quotient = -quotient
        return Word.from_u32(quotient)

    def sra(self, other: Word) -> Word:
        """Arithmetic right shift."""
        return Word.from_u32(_signed(self.to_u32()) >> (other.to_u32() & 31))