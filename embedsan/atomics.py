"""Lock-based atomic operations over a simulated byte-addressed memory.

Every address is mapped onto one of a small table of locks. An operation
holds the lock of its address for its whole duration, so operations on
any object size are atomic with respect to each other. Sizes the target
handles natively are reported by :func:`is_lock_free`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import IntEnum

N_LOCKS = 1 << 4

# Object sizes, in bytes, that have an integer type of their own.
INT_WIDTHS = (1, 2, 4, 8)

_LOCK_FREE_SIZES = frozenset(INT_WIDTHS)


class MemoryOrder(IntEnum):
    """Memory orders accepted by the atomic operations."""

    RELAXED = 0
    CONSUME = 1
    ACQUIRE = 2
    RELEASE = 3
    ACQ_REL = 4
    SEQ_CST = 5


def lock_index(address: int, pointer_size: int = 4) -> int:
    """Return the slot of the lock table that guards ``address``."""
    if address < 0:
        raise ValueError(f"negative address: {address}")
    if pointer_size <= 0:
        raise ValueError(f"invalid pointer size: {pointer_size}")
    mask = (1 << (8 * pointer_size)) - 1
    p = address & mask
    p = (p + (p >> 2) + (p << 4)) & mask
    p = (p + (p >> 7) + (p << 5)) & mask
    p = (p + (p >> 17) + (p << 13)) & mask
    if pointer_size > 4:
        p = (p + (p >> 31)) & mask
    return p & (N_LOCKS - 1)


def is_lock_free(size: int) -> bool:
    """Tell whether objects of ``size`` bytes are handled without a lock."""
    return size in _LOCK_FREE_SIZES


def _order(order: MemoryOrder | int) -> MemoryOrder:
    return MemoryOrder(order)


def _check_width(width: int) -> None:
    if width not in INT_WIDTHS:
        raise ValueError(f"unsupported integer width: {width}")


class AtomicMemory:
    """A flat memory whose every access is made atomic by an address lock."""

    def __init__(
        self,
        size: int = 4096,
        *,
        pointer_size: int = 4,
        byteorder: str = "little",
    ) -> None:
        if size < 0:
            raise ValueError(f"negative memory size: {size}")
        if byteorder not in ("little", "big"):
            raise ValueError(f"invalid byte order: {byteorder!r}")
        self._data = bytearray(size)
        self.pointer_size = pointer_size
        self.byteorder = byteorder
        self._locks = tuple(threading.Lock() for _ in range(N_LOCKS))

    def __len__(self) -> int:
        return len(self._data)

    def _check(self, address: int, size: int) -> None:
        if size <= 0:
            raise ValueError(f"invalid object size: {size}")
        if address < 0 or address + size > len(self._data):
            raise IndexError(
                f"access of {size} bytes at {address:#x} is outside memory"
            )

    def _lock(self, address: int) -> threading.Lock:
        return self._locks[lock_index(address, self.pointer_size)]

    def _read(self, address: int, size: int) -> bytes:
        return bytes(self._data[address:address + size])

    def _write(self, address: int, data: bytes) -> None:
        self._data[address:address + len(data)] = data

    def _to_int(self, data: bytes) -> int:
        return int.from_bytes(data, self.byteorder)

    def _to_bytes(self, value: int, width: int) -> bytes:
        mask = (1 << (8 * width)) - 1
        return (value & mask).to_bytes(width, self.byteorder)

    # Generic operations on objects of any size.

    def load(
        self, address: int, size: int, order: MemoryOrder | int = MemoryOrder.SEQ_CST
    ) -> bytes:
        """Return the ``size`` bytes stored at ``address``."""
        _order(order)
        self._check(address, size)
        with self._lock(address):
            return self._read(address, size)

    def store(
        self, address: int, data: bytes, order: MemoryOrder | int = MemoryOrder.SEQ_CST
    ) -> None:
        """Store ``data`` at ``address``."""
        _order(order)
        data = bytes(data)
        self._check(address, len(data))
        with self._lock(address):
            self._write(address, data)

    def exchange(
        self, address: int, data: bytes, order: MemoryOrder | int = MemoryOrder.SEQ_CST
    ) -> bytes:
        """Store ``data`` at ``address`` and return what was there before."""
        _order(order)
        data = bytes(data)
        self._check(address, len(data))
        with self._lock(address):
            previous = self._read(address, len(data))
            self._write(address, data)
            return previous

    def compare_exchange(
        self,
        address: int,
        expected: bytes,
        desired: bytes,
        success: MemoryOrder | int = MemoryOrder.SEQ_CST,
        failure: MemoryOrder | int = MemoryOrder.SEQ_CST,
    ) -> tuple[bool, bytes]:
        """Replace ``expected`` with ``desired`` at ``address`` if it is there.

        Returns whether the swap happened and the bytes found at ``address``.
        """
        _order(success)
        _order(failure)
        expected = bytes(expected)
        desired = bytes(desired)
        if len(expected) != len(desired):
            raise ValueError("expected and desired values differ in size")
        self._check(address, len(expected))
        with self._lock(address):
            current = self._read(address, len(expected))
            if current == expected:
                self._write(address, desired)
                return True, current
            return False, current

    # Operations on unsigned integers of a fixed width.

    def load_int(
        self, address: int, width: int, order: MemoryOrder | int = MemoryOrder.SEQ_CST
    ) -> int:
        """Return the unsigned integer of ``width`` bytes at ``address``."""
        _check_width(width)
        return self._to_int(self.load(address, width, order))

    def store_int(
        self,
        address: int,
        width: int,
        value: int,
        order: MemoryOrder | int = MemoryOrder.SEQ_CST,
    ) -> None:
        """Store ``value``, truncated to ``width`` bytes, at ``address``."""
        _check_width(width)
        self.store(address, self._to_bytes(value, width), order)

    def exchange_int(
        self,
        address: int,
        width: int,
        value: int,
        order: MemoryOrder | int = MemoryOrder.SEQ_CST,
    ) -> int:
        """Store ``value`` at ``address`` and return the previous integer."""
        _check_width(width)
        return self._to_int(self.exchange(address, self._to_bytes(value, width), order))

    def compare_exchange_int(
        self,
        address: int,
        width: int,
        expected: int,
        desired: int,
        success: MemoryOrder | int = MemoryOrder.SEQ_CST,
        failure: MemoryOrder | int = MemoryOrder.SEQ_CST,
    ) -> tuple[bool, int]:
        """Integer form of :meth:`compare_exchange`."""
        _check_width(width)
        swapped, current = self.compare_exchange(
            address,
            self._to_bytes(expected, width),
            self._to_bytes(desired, width),
            success,
            failure,
        )
        return swapped, self._to_int(current)

    def _fetch(
        self,
        address: int,
        width: int,
        value: int,
        order: MemoryOrder | int,
        combine: Callable[[int, int], int],
    ) -> int:
        _order(order)
        _check_width(width)
        self._check(address, width)
        mask = (1 << (8 * width)) - 1
        with self._lock(address):
            previous = self._to_int(self._read(address, width))
            updated = combine(previous, value & mask) & mask
            self._write(address, self._to_bytes(updated, width))
            return previous

    def fetch_add(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Add ``value`` at ``address``, wrapping; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: a + b)

    def fetch_sub(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Subtract ``value`` at ``address``, wrapping; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: a - b)

    def fetch_and(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Bitwise-and ``value`` into ``address``; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: a & b)

    def fetch_or(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Bitwise-or ``value`` into ``address``; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: a | b)

    def fetch_xor(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Bitwise-xor ``value`` into ``address``; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: a ^ b)

    def fetch_nand(self, address, width, value, order=MemoryOrder.SEQ_CST) -> int:
        """Store ``~(old & value)`` at ``address``; return the old integer."""
        return self._fetch(address, width, value, order, lambda a, b: ~(a & b))