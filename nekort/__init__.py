"""Runtime core of a small dynamic virtual machine: values, calls, builtins,
hashing, Unicode and UTF-8 helpers, an XML parser, zlib streams, ELF lookup
and the opcode table."""

__version__ = "0.1.0"