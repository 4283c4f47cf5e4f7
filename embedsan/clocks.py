"""Vector clocks and the shadow state kept for threads, variables and locks.

Every clock entry packs a thread index into its top eight bits and a
logical clock into the low twenty-four bits. This encoding is also used
for the read and write epochs of variables.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

TID_SHIFT = 24
TID_MASK = 0xFF000000
CLOCK_MASK = 0x00FFFFFF

# Marks a variable whose reads are tracked by a full vector clock.
READ_SHARED = 0xEFFFFFFF

VectorClock = list


def tid_of(value: int) -> int:
    """Return the thread index packed into an epoch."""
    return (value & TID_MASK) >> TID_SHIFT


def clock_of(value: int) -> int:
    """Return the logical clock packed into an epoch."""
    return value & CLOCK_MASK


def new_vector_clock(size: int) -> list[int]:
    """Return a vector clock of ``size`` entries, each at clock zero."""
    return [t << TID_SHIFT for t in range(size)]


def extend_vector_clock(clock: list[int], total_threads: int) -> None:
    """Grow ``clock`` in place with zero-clock entries up to ``total_threads``."""
    clock.extend(t << TID_SHIFT for t in range(len(clock), total_threads))


def extend_vector_clocks(first: list[int], second: list[int]) -> None:
    """Grow both clocks in place to the length of the longer one."""
    size = max(len(first), len(second))
    extend_vector_clock(first, size)
    extend_vector_clock(second, size)


@dataclass
class ThreadState:
    """Vector clock of one thread; ``epoch`` mirrors ``clock[tid]``."""

    tid: int = 0
    clock: list[int] = field(default_factory=list)
    epoch: int = 0

    def update_epoch(self) -> None:
        """Reload the epoch from the thread's own clock entry."""
        self.epoch = self.clock[self.tid]

    def increment(self) -> None:
        """Advance the thread's own clock by one tick."""
        self.epoch += 1
        if self.tid >= len(self.clock):
            extend_vector_clock(self.clock, self.tid + 1)
        self.clock[self.tid] = self.epoch


@dataclass
class VarState:
    """Last write and read epochs of one memory address."""

    write: int = 0
    read: int = 0
    read_clock: list[int] = field(default_factory=list)
    racy: bool = False


@dataclass
class LockState:
    """Vector clock released into a lock."""

    clock: list[int] = field(default_factory=list)


class ShadowState:
    """All metadata of the race detector: threads, variables and locks."""

    def __init__(self) -> None:
        self.threads: dict[int, ThreadState] = {}
        self.variables: dict[object, VarState] = {}
        self.locks: dict[object, LockState] = {}
        self.num_threads = 0
        self.reads = 0
        self.writes = 0
        self._threads_guard = threading.Lock()
        self._variables_guard = threading.Lock()
        self._locks_guard = threading.Lock()

    def update_thread_clocks(self) -> None:
        """Grow every thread's clock to the number of known threads.

        Not locked: call it with the thread table guarded.
        """
        count = len(self.threads)
        for state in self.threads.values():
            for index in range(len(state.clock), count):
                epoch = index << TID_SHIFT
                if state.tid == index:
                    epoch += 1
                state.clock.append(epoch)

    def get_state(self, tid: int) -> ThreadState:
        """Return the state of thread ``tid``, creating it on first use."""
        with self._threads_guard:
            state = self.threads.get(tid)
            if state is None:
                state = ThreadState()
                self.threads[tid] = state
                self.num_threads = len(self.threads)
                state.tid = self.num_threads
                state.epoch = (state.tid << TID_SHIFT) + 1
                self.update_thread_clocks()
                # The new thread's own slot lies one past the clocks sized so
                # far; it is filled in when the clocks next grow.
                if state.tid < len(state.clock):
                    state.clock[state.tid] = state.epoch
                self.num_threads = len(self.threads) + 1
            return state

    def get_thread_state(self) -> ThreadState:
        """Return the state of the calling thread."""
        return self.get_state(threading.get_ident())

    def get_var_state(self, address: object, is_write: bool) -> VarState:
        """Return the state of ``address``, creating it on first access."""
        with self._variables_guard:
            state = self.variables.get(address)
            if state is None:
                thread = self.get_thread_state()
                base = thread.tid << TID_SHIFT
                state = VarState(write=base, read=base)
                if is_write:
                    state.write = thread.epoch
                else:
                    state.read = thread.epoch
                self.variables[address] = state
            return state

    def get_lock_state(self, lock: object) -> LockState:
        """Return the state of ``lock``, creating a zero clock on first use."""
        with self._locks_guard:
            state = self.locks.get(lock)
            if state is None:
                state = LockState(new_vector_clock(self.num_threads))
                self.locks[lock] = state
            return state

    def summary(self) -> str:
        """Return counts of locks, addresses, accesses, races and threads."""
        races = sum(1 for state in self.variables.values() if state.racy)
        lines = [
            f"Locks: {len(self.locks)}",
            f"Addresses: {len(self.variables)}",
            f"Reads: {self.reads}",
            f"Writes: {self.writes}",
            f"Races: {races}",
            f"Threads: {len(self.threads)}",
        ]
        return "\n".join(lines)