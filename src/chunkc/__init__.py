"""chunkc — batch build driver for pluggable source compilers."""

__version__ = "0.3.0"
