import threading

import pytest

from embedsan.atomics import (
    N_LOCKS,
    AtomicMemory,
    MemoryOrder,
    is_lock_free,
    is_lock_free as _lock_free,
    lock_index,
)


@pytest.fixture
def memory():
    return AtomicMemory(256)


@pytest.mark.parametrize("pointer_size", [4, 8])
def test_lock_index_stays_in_table(pointer_size):
    indices = {lock_index(address, pointer_size) for address in range(0, 4096, 4)}
    assert indices <= set(range(N_LOCKS))
    assert len(indices) > 1


def test_lock_index_is_deterministic():
    assert lock_index(0x1234, 4) == lock_index(0x1234, 4)
    assert lock_index(0, 4) == 0


def test_lock_index_rejects_negative_address():
    with pytest.raises(ValueError):
        lock_index(-1)


@pytest.mark.parametrize("size", [1, 2, 4, 8])
def test_native_sizes_are_lock_free(size):
    assert is_lock_free(size) is True


@pytest.mark.parametrize("size", [3, 16, 32])
def test_other_sizes_need_a_lock(size):
    assert _lock_free(size) is False


@pytest.mark.parametrize("order", list(MemoryOrder))
def test_every_memory_order_round_trips(memory, order):
    memory.store(0, b"\x05\x06", order)
    assert memory.load(0, 2, order) == b"\x05\x06"


def test_store_then_load_round_trip(memory):
    memory.store(10, b"\x01\x02\x03", MemoryOrder.RELEASE)
    assert memory.load(10, 3, MemoryOrder.ACQUIRE) == b"\x01\x02\x03"


def test_large_object_round_trip(memory):
    payload = bytes(range(40))
    memory.store(100, payload)
    assert memory.load(100, 40) == payload


def test_exchange_returns_previous_bytes(memory):
    memory.store(0, b"ab")
    assert memory.exchange(0, b"cd") == b"ab"
    assert memory.load(0, 2) == b"cd"


def test_compare_exchange_success(memory):
    memory.store(8, b"xyz")
    ok, seen = memory.compare_exchange(8, b"xyz", b"123")
    assert ok is True
    assert seen == b"xyz"
    assert memory.load(8, 3) == b"123"


def test_compare_exchange_failure_reports_current(memory):
    memory.store(8, b"xyz")
    ok, seen = memory.compare_exchange(8, b"abc", b"123")
    assert ok is False
    assert seen == b"xyz"
    assert memory.load(8, 3) == b"xyz"


def test_compare_exchange_size_mismatch(memory):
    with pytest.raises(ValueError):
        memory.compare_exchange(0, b"ab", b"abc")


def test_out_of_range_access(memory):
    with pytest.raises(IndexError):
        memory.load(250, 8)
    with pytest.raises(IndexError):
        memory.store(-1, b"a")


def test_invalid_order_rejected(memory):
    with pytest.raises(ValueError):
        memory.load(0, 1, 42)


@pytest.mark.parametrize("width", [1, 2, 4, 8])
def test_int_round_trip(memory, width):
    value = (1 << (8 * width)) - 2
    memory.store_int(16, width, value)
    assert memory.load_int(16, width) == value


def test_int_uses_little_endian_layout(memory):
    memory.store_int(0, 4, 0x01020304)
    assert memory.load(0, 4) == b"\x04\x03\x02\x01"


def test_big_endian_layout():
    memory = AtomicMemory(16, byteorder="big")
    memory.store_int(0, 2, 0x0102)
    assert memory.load(0, 2) == b"\x01\x02"


def test_unsupported_width(memory):
    with pytest.raises(ValueError):
        memory.load_int(0, 3)
    with pytest.raises(ValueError):
        memory.fetch_add(0, 16, 1)


def test_exchange_int(memory):
    memory.store_int(0, 4, 7)
    assert memory.exchange_int(0, 4, 9) == 7
    assert memory.load_int(0, 4) == 9


def test_compare_exchange_int(memory):
    memory.store_int(0, 8, 5)
    assert memory.compare_exchange_int(0, 8, 4, 6) == (False, 5)
    assert memory.compare_exchange_int(0, 8, 5, 6) == (True, 5)
    assert memory.load_int(0, 8) == 6


def test_fetch_add_wraps(memory):
    memory.store_int(0, 1, 255)
    assert memory.fetch_add(0, 1, 1) == 255
    assert memory.load_int(0, 1) == 0


def test_fetch_sub_wraps(memory):
    memory.store_int(0, 2, 0)
    assert memory.fetch_sub(0, 2, 1) == 0
    assert memory.load_int(0, 2) == 0xFFFF


def test_add_then_sub_restores(memory):
    memory.store_int(4, 4, 1000)
    memory.fetch_add(4, 4, 12345)
    memory.fetch_sub(4, 4, 12345)
    assert memory.load_int(4, 4) == 1000


def test_bitwise_fetch_operations(memory):
    memory.store_int(0, 1, 0b1100)
    assert memory.fetch_and(0, 1, 0b1010) == 0b1100
    assert memory.load_int(0, 1) == 0b1100 & 0b1010
    memory.fetch_or(0, 1, 0b0001)
    assert memory.load_int(0, 1) == (0b1100 & 0b1010) | 0b0001
    memory.fetch_xor(0, 1, 0b1001)
    assert memory.load_int(0, 1) == 0


def test_xor_twice_restores(memory):
    memory.store_int(0, 8, 0xDEADBEEF)
    memory.fetch_xor(0, 8, 0x5555)
    memory.fetch_xor(0, 8, 0x5555)
    assert memory.load_int(0, 8) == 0xDEADBEEF


def test_fetch_nand(memory):
    memory.store_int(0, 1, 0b1100)
    assert memory.fetch_nand(0, 1, 0b1010) == 0b1100
    assert memory.load_int(0, 1) == 0xF7


def test_concurrent_fetch_add_loses_no_update(memory):
    threads = [
        threading.Thread(target=lambda: [memory.fetch_add(0, 4, 1) for _ in range(1000)])
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert memory.load_int(0, 4) == 8 * 1000


def test_len_reports_size():
    assert len(AtomicMemory(64)) == 64