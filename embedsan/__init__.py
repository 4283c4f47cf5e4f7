"""Vector clock shadow state, a file registry and atomic memory primitives for race detection."""

__version__ = "0.1.0"
__all__ = ["clocks", "files", "atomics"]