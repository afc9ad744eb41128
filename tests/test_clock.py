import time

import pytest

from tpbench.clock import NSEC_PER_SEC, Timespec, clock_get, clock_init, clock_sub


def test_from_ns_splits_seconds():
    ts = Timespec.from_ns(3 * NSEC_PER_SEC + 7)
    assert ts == Timespec(3, 7)


def test_sub_borrows_from_seconds():
    assert Timespec(5, 100) - Timespec(2, 200) == Timespec(2, NSEC_PER_SEC - 100)


def test_sub_without_borrow():
    assert Timespec(5, 300) - Timespec(2, 200) == Timespec(3, 100)


@pytest.mark.parametrize(
    "a_ns,b_ns",
    [(0, 0), (10 * NSEC_PER_SEC + 1, 3 * NSEC_PER_SEC + 999_999_999), (NSEC_PER_SEC, 1)],
)
def test_clock_sub_matches_nanosecond_difference(a_ns, b_ns):
    diff = clock_sub(Timespec.from_ns(a_ns), Timespec.from_ns(b_ns))
    assert 0 <= diff.nsec < NSEC_PER_SEC
    assert diff.sec * NSEC_PER_SEC + diff.nsec == a_ns - b_ns


def test_sub_rejects_other_types():
    with pytest.raises(TypeError):
        Timespec(1, 0) - 5


def test_str_pads_nanoseconds():
    assert str(Timespec(1, 5)) == "1.000000005"


def test_clock_init_picks_known_clock_and_is_stable():
    clock_id = clock_init()
    candidates = {
        getattr(time, name)
        for name in ("CLOCK_MONOTONIC_RAW", "CLOCK_MONOTONIC", "CLOCK_REALTIME")
        if hasattr(time, name)
    }
    assert clock_id in candidates
    assert clock_init() == clock_id


def test_clock_get_does_not_go_backwards():
    first = clock_get()
    second = clock_get()
    assert second >= first
    assert 0 <= first.nsec < NSEC_PER_SEC