# starkvm

Building blocks for a virtual machine whose execution is laid out as STARK
trace tables: 32-bit words, program ROMs, advice tapes, prime-field
arithmetic, symbolic constraint expressions, AIR builders, bus interactions
with their permutation (lookup) argument, and the chips that turn recorded
machine activity into traces.

The package has no dependencies outside the standard library and needs
Python 3.10 or later.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `starkvm.opcodes`: the instruction opcodes (`LOAD32`, `STORE32`, `JAL`,
  `BEQ`, `STOP`, `ADD32`, `SDIV32`, `ADD`, `WRITE`, ...) and
  `BYTES_PER_INSTR`. `opcode_name(opcode)` returns the mnemonic, or raises
  `ValueError` for an unknown number.
- `starkvm.field`: `Fp`, an element of the prime field of order
  `MODULUS = 2013265921`, with `+ - * / **`, `inverse()` (raising
  `ZeroDivisionError` on zero), `is_zero()`, `powers()` and
  `Fp.from_signed(n)`. Also `batch_multiplicative_inverse_allowing_zero`
  (zeros stay zero) and `next_power_of_two`.
- `starkvm.matrix`: `RowMajorMatrix` (`height()`, `row()`, `rows()`, `set()`,
  `RowMajorMatrix.new_col(values)`) and `pad_to_power_of_two(values, width)`,
  which appends zero rows.
- `starkvm.word`: `Word`, a big-endian four-cell memory word, with
  `from_u8`, `from_u32`, `to_u32`, `transform`, `reduce`, wrapping `+ - *`,
  unsigned `//`, `<<`, `>>`, bitwise `& | ^`, and `mulhs`, `mulhu`, `sdiv`,
  `sra`. Division by zero raises `ZeroDivisionError`; `sdiv` of the most
  negative value by -1 raises `OverflowError`. Also the layout constants
  `OPERAND_ELEMENTS`, `INSTRUCTION_ELEMENTS`, `CPU_MEMORY_CHANNELS`,
  `MEMORY_CELL_BYTES` and `LOOKUP_DEGREE_BOUND`.
- `starkvm.advice`: the `AdviceProvider` interface, `FixedAdviceProvider`
  (bytes given up front) and `StdinAdviceProvider` (standard input, or any
  binary stream). `get_advice()` returns the next byte or `None`.
- `starkvm.program`: `Operands`, `InstructionWord` (`flatten()` to field
  elements), `ProgramROM` (`get_instruction`, `from_machine_code`,
  `from_file`) and the abstract `Instruction` base class with `OPCODE`,
  `execute` and `execute_with_advice`.
- `starkvm.symbolic`: `Trace`, `SymbolicVariable`, `ExprKind`,
  `SymbolicExpression` (with `degree_multiple()`) and `SymbolicExpressionExt`.
- `starkvm.air`: the `AirBuilder` interface (`when`, `when_first_row`,
  `when_last_row`, `when_transition`, `assert_zero`, `assert_one`,
  `assert_eq`, `assert_bool`), `TwoRowView`, and three builders:
  `SymbolicAirBuilder` records constraints, `DebugConstraintBuilder` checks
  each one on concrete values and raises `ConstraintViolation`, and
  `ProverConstraintFolder` folds them into one accumulator with powers of
  `alpha`. `get_symbolic_constraints`, `get_max_constraint_degree` and
  `get_log_quotient_degree` inspect a chip's constraints.
- `starkvm.chip`: `VirtualPairCol`, `BusArgument`, `InteractionType`,
  `Interaction`, the abstract `Chip`, `generate_permutation_trace` and
  `eval_permutation_constraints`.
- `starkvm.constraints`: `check_constraints` checks every row of a chip's
  main and permutation traces, and `check_cumulative_sums` checks that the
  running sums of all permutation traces add up to zero. Both raise
  `ConstraintViolation`.
- `starkvm.proof`: `OpenedValues`, `ChipProof`, `Commitments` and
  `MachineProof`, with `to_dict()` / `MachineProof.from_dict()` for a plain
  data form (`from_dict` raises `ValueError` on malformed input).
- The chips:
  - `starkvm.memory.MemoryChip`: `read` (raises `KeyError` on a read before
    any write) and `write`, logging operations by clock cycle; the trace is
    sorted by address and clock, with dummy reads inserted to keep gaps
    within range and padding to a power of two.
  - `starkvm.range_check.RangeCheckerChip`: counts the cells passed to
    `range_check(word)` over the values `0 .. max_value - 1`.
  - `starkvm.program_chip.ProgramChip`: holds a `ProgramROM` as a
    preprocessed table and counts instruction reads with `read_word`.
  - `starkvm.output.OutputChip`: the `(clock, byte)` pairs written as
    output; `bytes()` returns the bytes.
  - `starkvm.native_field.NativeFieldChip`: `record(kind, b, c)` computes
    `b + c`, `b - c` or `b * c` in the field (`NativeOpKind`), records it and
    returns the result as a `Word`.

Chips that talk over a shared bus call `mem_bus()`, `range_bus()`,
`program_bus()` or `general_bus()` on the machine object passed to them;
each must return a `BusArgument`.

## Example

```python
from starkvm.air import ConstraintViolation, DebugConstraintBuilder, TwoRowView
from starkvm.field import Fp
from starkvm.memory import MemoryChip
from starkvm.native_field import COL_MAP, NativeFieldChip, NativeOpKind
from starkvm.program import ProgramROM
from starkvm.word import Word

a = Word.from_u32(0xFFFFFFFF)
b = Word.from_u32(2)
assert (a + b).to_u32() == 1

rom = ProgramROM.from_machine_code(bytes(24))
assert rom.get_instruction(0).opcode == 0

memory = MemoryChip()
memory.write(0, 16, Word.from_u32(7), True)
assert memory.read(1, 16, True, 0, 0, 0, "").to_u32() == 7

chip = NativeFieldChip()
assert chip.record(NativeOpKind.ADD, Word.from_u32(2), Word.from_u32(3)).to_u32() == 5
row = chip.generate_trace(None).row(0)
chip.eval(DebugConstraintBuilder(machine=None, main=TwoRowView(row, row)))

row[COL_MAP.output[3]] = Fp(6)  # a wrong result
try:
    chip.eval(DebugConstraintBuilder(machine=None, main=TwoRowView(row, row)))
except ConstraintViolation:
    pass
```

## What the package does not do

- It has no command-line tool.
- It has no CPU chip and no machine that fetches and runs a `ProgramROM`:
  `Instruction` is an abstract base class, and no concrete instructions are
  provided. Chips are filled by calling their methods directly.
- It does not commit to traces or produce and verify cryptographic proofs.
  `MachineProof` and its parts are plain data containers; the checks it
  offers are the row-by-row ones in `starkvm.constraints`.