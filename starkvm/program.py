"""Instructions, operands and the read-only program memory."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from os import PathLike
from typing import Any, ClassVar

from starkvm.advice import AdviceProvider
from starkvm.field import Fp
from starkvm.word import INSTRUCTION_ELEMENTS, OPERAND_ELEMENTS, Word

_INSTRUCTION = struct.Struct("<I" + "i" * OPERAND_ELEMENTS)
_OPERANDS = struct.Struct("<" + "i" * OPERAND_ELEMENTS)


@dataclass(frozen=True)
class Operands:
    """The five operands of an instruction."""

    values: tuple[Any, ...] = (0,) * OPERAND_ELEMENTS

    def __post_init__(self) -> None:
        values = tuple(self.values)
        if len(values) > OPERAND_ELEMENTS:
            raise ValueError(f"at most {OPERAND_ELEMENTS} operands")
        values += (0,) * (OPERAND_ELEMENTS - len(values))
        object.__setattr__(self, "values", values)

    def a(self) -> Any:
        return self.values[0]

    def b(self) -> Any:
        return self.values[1]

    def c(self) -> Any:
        return self.values[2]

    def d(self) -> Any:
        return self.values[3]

    def e(self) -> Any:
        return self.values[4]

    def is_imm(self) -> Any:
        return self.values[4]

    def imm32(self) -> Word:
        return Word(self.values[1:5])

    def to_field(self) -> Operands:
        """Map signed integer operands into the field."""
        return Operands(tuple(Fp.from_signed(v) for v in self.values))

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)


@dataclass(frozen=True)
class InstructionWord:
    opcode: int = 0
    operands: Operands = field(default_factory=Operands)

    def flatten(self) -> tuple[Fp, ...]:
        """The opcode followed by the operands, as INSTRUCTION_ELEMENTS field elements."""
        result = (Fp(self.opcode), *self.operands.to_field())
        assert len(result) == INSTRUCTION_ELEMENTS
        return result


@dataclass
class ProgramROM:
    """The program's instructions, addressed by program counter."""

    instructions: list[InstructionWord] = field(default_factory=list)

    def get_instruction(self, pc: int) -> InstructionWord:
        if not 0 <= pc < len(self.instructions):
            raise IndexError(f"program counter {pc} outside program")
        return self.instructions[pc]

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[InstructionWord]:
        return iter(self.instructions)

    @classmethod
    def from_machine_code(cls, code: bytes) -> ProgramROM:
        """Decode little-endian instructions; a trailing partial instruction is ignored."""
        usable = len(code) - len(code) % _INSTRUCTION.size
        return cls(
            [
                InstructionWord(opcode, Operands(operands))
                for opcode, *operands in _INSTRUCTION.iter_unpack(code[:usable])
            ]
        )

    @classmethod
    def from_file(cls, filename: str | PathLike[str]) -> ProgramROM:
        """Read a program file; raise EOFError if it ends inside an instruction's operands."""
        instructions = []
        with open(filename, "rb") as handle:
            while len(head := handle.read(4)) == 4:
                (opcode,) = struct.unpack("<I", head)
                body = handle.read(_OPERANDS.size)
                if len(body) < _OPERANDS.size:
                    raise EOFError("program file ends inside an instruction")
                instructions.append(InstructionWord(opcode, Operands(_OPERANDS.unpack(body))))
        return cls(instructions)


class Instruction(ABC):
    """An instruction that a machine can execute."""

    OPCODE: ClassVar[int]

    @classmethod
    @abstractmethod
    def execute(cls, state: Any, ops: Operands) -> None:
        """Apply the instruction to the machine state."""

    @classmethod
    def execute_with_advice(
        cls, state: Any, ops: Operands, advice: AdviceProvider
    ) -> None:
        cls.execute(state, ops)