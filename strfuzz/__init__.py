"""strfuzz — mutation-based fuzzer for programs that read stdin."""

__version__ = "1.0.0"
