import threading

import pytest
from hash_hound.state_queue import SingleSlotQueue


class TestSingleSlotQueue:
    """Test suite for the latest-wins progress channel"""

    def test_get_returns_published_item(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        q.publish(1)
        assert q.get(timeout=1) == 1

    def test_coalesces_unread_items(self):
        """A newer item replaces an unread one instead of queuing behind it"""
        q: SingleSlotQueue[int] = SingleSlotQueue()
        for i in range(1000):
            q.publish(i)
        assert q.get(timeout=1) == 999
        assert q.published == 1000
        with pytest.raises(TimeoutError):
            q.get(timeout=0.01)

    def test_publish_never_blocks_without_consumer(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        done = threading.Event()

        def producer():
            for i in range(10_000):
                q.publish(i)
            done.set()

        t = threading.Thread(target=producer)
        t.start()
        assert done.wait(timeout=5)
        t.join()

    def test_close_returns_none(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        q.close()
        assert q.closed
        assert q.get(timeout=1) is None

    def test_pending_item_delivered_before_close(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        q.publish(7)
        q.close()
        assert q.get(timeout=1) == 7
        assert q.get(timeout=1) is None

    def test_publish_after_close_ignored(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        q.close()
        q.publish(1)
        assert q.get(timeout=1) is None
        assert q.latest() is None

    def test_latest_does_not_consume(self):
        q: SingleSlotQueue[int] = SingleSlotQueue()
        q.publish(3)
        assert q.latest() == 3
        assert q.latest() == 3
        assert q.get(timeout=1) == 3
        assert q.latest() == 3

    def test_get_wakes_on_publish_from_other_thread(self):
        q: SingleSlotQueue[str] = SingleSlotQueue()
        timer = threading.Timer(0.05, q.publish, args=("tick",))
        timer.start()
        try:
            assert q.get(timeout=5) == "tick"
        finally:
            timer.cancel()
