"""Opcode numbers of the virtual machine's instruction set."""

BYTES_PER_INSTR = 24  # 4 bytes per word * 6 words per instruction

# Core
LOAD32 = 1
STORE32 = 2
JAL = 3
JALV = 4
BEQ = 5
BNE = 6
IMM32 = 7
STOP = 8
LOADFP = 10

# Nondeterministic
READ_ADVICE = 9

# U32 ALU
ADD32 = 100
SUB32 = 101
MUL32 = 102
DIV32 = 103
SDIV32 = 110
LT32 = 104
SHL32 = 105
SHR32 = 106
AND32 = 107
OR32 = 108
XOR32 = 109
NE32 = 111
MULHU32 = 112
SRA32 = 113
MULHS32 = 114
LTE32 = 115
EQ32 = 116

# Native field
ADD = 200
SUB = 201
MUL = 202

# Output
WRITE = 300

OPCODES: dict[str, int] = {
    "LOAD32": LOAD32,
    "STORE32": STORE32,
    "JAL": JAL,
    "JALV": JALV,
    "BEQ": BEQ,
    "BNE": BNE,
    "IMM32": IMM32,
    "STOP": STOP,
    "LOADFP": LOADFP,
    "READ_ADVICE": READ_ADVICE,
    "ADD32": ADD32,
    "SUB32": SUB32,
    "MUL32": MUL32,
    "DIV32": DIV32,
    "SDIV32": SDIV32,
    "LT32": LT32,
    "SHL32": SHL32,
    "SHR32": SHR32,
    "AND32": AND32,
    "OR32": OR32,
    "XOR32": XOR32,
    "NE32": NE32,
    "MULHU32": MULHU32,
    "SRA32": SRA32,
    "MULHS32": MULHS32,
    "LTE32": LTE32,
    "EQ32": EQ32,
    "ADD": ADD,
    "SUB": SUB,
    "MUL": MUL,
    "WRITE": WRITE,
}

_NAMES = {code: name for name, code in OPCODES.items()}


def opcode_name(opcode: int) -> str:
    """Return the mnemonic of an opcode; raise ValueError if it is unknown."""
    try:
        return _NAMES[opcode]
    except KeyError:
        raise ValueError(f"unrecognized opcode: {opcode}") from None