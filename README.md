# embedsan

Building blocks for a vector-clock based data race detector: shadow state
for threads, memory addresses and locks, a registry of source files named in
reports, and a lock-guarded model of atomic memory operations.

## Installation

```
pip install embedsan
```

For running the test suite:

```
pip install "embedsan[test]"
pytest
```

## Vector clocks and shadow state

`embedsan.clocks` keeps shadow metadata for threads, memory addresses and
locks. Each clock entry is an *epoch*: the thread index sits in the top 8 bits
and the clock value in the low 24 bits. `tid_of` and `clock_of` take an epoch
apart.

```python
from embedsan.clocks import (
    ShadowState, new_vector_clock, extend_vector_clock,
    extend_vector_clocks, tid_of, clock_of,
)

shadow = ShadowState()
main = shadow.get_state(1)            # the first thread registered gets index 1
worker = shadow.get_state(10)         # every known thread's clock is widened
assert tid_of(worker.epoch) == 2
assert clock_of(worker.epoch) == 1

var = shadow.get_var_state(0x1000, is_write=True)
lock = shadow.get_lock_state(0x2000)  # a vector clock of zero-clock epochs

clock = new_vector_clock(3)           # [0 << 24, 1 << 24, 2 << 24]
extend_vector_clock(clock, 5)         # grows in place to 5 entries
print(shadow.summary())
```

- `ShadowState.get_state(tid)` returns a thread's `ThreadState`, creating it
  on first use; `get_thread_state()` does the same for the calling thread.
- `get_var_state(address, is_write)` returns a `VarState` (write and read
  epochs, a read vector clock and a `racy` flag), creating it on first access
  with the calling thread's epoch as its write or read epoch.
- `get_lock_state(lock)` returns a `LockState` whose `clock` starts at zero
  for every known thread.
- `summary()` returns the counts of locks, addresses, reads, writes, racy
  addresses and threads, one per line.

A `ThreadState` keeps its `epoch` equal to its own entry in its `clock`:
`increment()` advances the epoch by one tick and `update_epoch()` reads it
back from the clock. `extend_vector_clocks(first, second)` grows two clocks to
the same length.

## File dictionary

`embedsan.files.FileDictionary` records the source files and module paths that
race reports refer to, through `insert_file`, `exists` and `save_module`.

## Atomic memory

`embedsan.atomics.AtomicMemory` models a flat byte-addressed memory (4096
bytes unless told otherwise) on which loads, stores, exchanges,
compare-exchanges and fetch-and-modify operations (`fetch_add`, `fetch_sub`,
`fetch_and`, `fetch_or`, `fetch_xor`, `fetch_nand`) are atomic. Each address
is guarded by one of sixteen locks, chosen by `lock_index`, and an operation
holds that lock for its whole duration. Every operation takes a `MemoryOrder`,
`SEQ_CST` by default. `is_lock_free` reports the operand sizes that have an
integer type of their own: 1, 2, 4 and 8 bytes.

```python
from embedsan.atomics import AtomicMemory, MemoryOrder

mem = AtomicMemory()
mem.store_int(0x40, 4, 7, MemoryOrder.SEQ_CST)
old = mem.fetch_add(0x40, 4, 5, MemoryOrder.SEQ_CST)      # returns 7
ok, seen = mem.compare_exchange_int(
    0x40, 4, 12, 99, MemoryOrder.SEQ_CST, MemoryOrder.RELAXED
)                                                          # (True, 12)
```

The byte forms (`load`, `store`, `exchange`, `compare_exchange`) work on
objects of any size. Integer operations are unsigned and wrap modulo the
operand width. An access outside memory raises `IndexError`; an unsupported
integer width or an invalid memory order raises `ValueError`.

## What this package does not do

The package holds the detector's state and its atomic primitives only. It
does not check memory accesses or lock operations against that state, does not
decide which accesses race, does not produce race reports, and has no command
to run.