"""Sources of nondeterministic advice bytes for a running program."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO


class AdviceProvider(ABC):
    """A tape of advice bytes."""

    @abstractmethod
    def get_advice(self) -> int | None:
        """Return the next byte from the advice tape, or None when it is exhausted."""


@dataclass
class FixedAdviceProvider(AdviceProvider):
    """Advice taken from a fixed byte string."""

    advice: bytes = b""
    _index: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self.advice = bytes(self.advice)

    @classmethod
    def empty(cls) -> FixedAdviceProvider:
        return cls(b"")

    def get_advice(self) -> int | None:
        if self._index >= len(self.advice):
            return None
        byte = self.advice[self._index]
        self._index += 1
        return byte


@dataclass
class StdinAdviceProvider(AdviceProvider):
    """Advice read one byte at a time from standard input (or a given stream)."""

    stream: BinaryIO | None = None

    def get_advice(self) -> int | None:
        stream = self.stream if self.stream is not None else sys.stdin.buffer
        try:
            data = stream.read(1)
        except (OSError, ValueError):
            return None
        return data[0] if data else None