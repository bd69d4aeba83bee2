"""The program chip: the program ROM as a preprocessed table, with read counts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.chip import Chip, Interaction, VirtualPairCol
from starkvm.field import Fp, next_power_of_two
from starkvm.matrix import RowMajorMatrix, pad_to_power_of_two
from starkvm.program import InstructionWord, Operands, ProgramROM
from starkvm.word import OPERAND_ELEMENTS

NUM_PROGRAM_COLS = 1
NUM_PREPROCESSED_COLS = 2 + OPERAND_ELEMENTS


@dataclass(frozen=True)
class ProgramCols:
    """The main trace columns: how often each instruction was read."""

    multiplicity: Any


@dataclass(frozen=True)
class ProgramPreprocessedCols:
    """The preprocessed columns: program counter, opcode and operands."""

    pc: Any
    opcode: Any
    operands: Operands


COL_MAP = ProgramCols(0)
PREPROCESSED_COL_MAP = ProgramPreprocessedCols(
    0, 1, Operands(tuple(range(2, NUM_PREPROCESSED_COLS)))
)


@dataclass
class ProgramChip(Chip):
    """Holds the program ROM and counts the reads of each instruction."""

    program_rom: ProgramROM = field(default_factory=ProgramROM)
    counts: list[int] = field(default_factory=list)

    width: ClassVar[int] = NUM_PROGRAM_COLS

    def set_program_rom(self, rom: ProgramROM) -> None:
        self.program_rom = ProgramROM(list(rom.instructions))
        self.counts = [0] * len(rom)

    def read_word(self, index: int) -> None:
        """Record a read of the instruction at index."""
        if not 0 <= index < len(self.program_rom):
            raise IndexError(f"instruction {index} outside program")
        self.counts[index] += 1

    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        values = pad_to_power_of_two([Fp(c) for c in self.counts], NUM_PROGRAM_COLS)
        return RowMajorMatrix(values, NUM_PROGRAM_COLS)

    def preprocessed_trace(self) -> RowMajorMatrix:
        rom = list(self.program_rom.instructions)
        rom.extend(InstructionWord() for _ in range(next_power_of_two(len(rom)) - len(rom)))
        values = [
            value
            for n, word in enumerate(rom)
            for value in (Fp(n), *word.flatten())
        ]
        return RowMajorMatrix(values, NUM_PREPROCESSED_COLS)

    def global_receives(self, machine: Any) -> list[Interaction]:
        cols = PREPROCESSED_COL_MAP
        fields_ = [
            VirtualPairCol.single_preprocessed(cols.pc),
            VirtualPairCol.single_preprocessed(cols.opcode),
            *(VirtualPairCol.single_preprocessed(op) for op in cols.operands),
        ]
        return [
            Interaction(
                fields_,
                VirtualPairCol.single_main(COL_MAP.multiplicity),
                machine.program_bus(),
            )
        ]

    def eval(self, builder: AirBuilder) -> None:
        """The table has no constraints of its own beyond the bus argument."""