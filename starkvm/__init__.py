"""Words, programs, field arithmetic, constraint builders and trace-generating chips for a STARK-provable virtual machine."""

__version__ = "0.1.0"