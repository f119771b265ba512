import threading

import pytest

from library_api.errors import Busy
from library_api.utils.keyed_lock import KeyedLock


def test_entry_is_dropped_after_release():
    locks = KeyedLock()
    with locks.hold("b1", timeout=1):
        assert len(locks) == 1
    assert len(locks) == 0


def test_same_key_times_out_with_busy():
    locks = KeyedLock()
    with locks.hold("b1", timeout=1):
        with pytest.raises(Busy):
            with locks.hold("b1", timeout=0.05):
                pass
    # the failed waiter must not leak its entry
    assert len(locks) == 0


def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()
    entered = threading.Event()

    def other():
        with locks.hold("b2", timeout=0.5):
            entered.set()

    with locks.hold("b1", timeout=1):
        t = threading.Thread(target=other)
        t.start()
        t.join(timeout=2)

    assert entered.is_set()


def test_waiter_gets_lock_after_holder_leaves():
    locks = KeyedLock()
    order = []
    holding = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold("b1", timeout=1):
            order.append("holder")
            holding.set()
            release.wait(2)

    t = threading.Thread(target=holder)
    t.start()
    holding.wait(2)
    release.set()
    with locks.hold("b1", timeout=2):
        order.append("waiter")
    t.join()

    assert order == ["holder", "waiter"]
