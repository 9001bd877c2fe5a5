"""
Unit tests for the single-worker execution queue.
"""
import threading
import time

import pytest
from litedb.execution import ExecutionQueue


@pytest.fixture
def queue():
    q = ExecutionQueue('test-queue')
    yield q
    q.shutdown()


def test_run_returns_result(queue):
    assert queue.run(lambda a, b=0: a + b, 1, b=2) == 3
    assert queue.completed == 1


def test_runs_on_one_worker_thread(queue):
    """Test every unit runs on the same dedicated thread"""
    names = {queue.run(lambda: threading.current_thread().name) for _ in range(5)}
    assert len(names) == 1
    assert names.pop().startswith('test-queue')
    assert not queue.in_worker


def test_exceptions_propagate(queue):
    def fail():
        raise KeyError('boom')

    with pytest.raises(KeyError):
        queue.run(fail)
    assert queue.run(lambda: 'still running') == 'still running'


def test_nested_run_executes_inline(queue):
    """Test a unit that submits more work does not deadlock"""
    def outer():
        return queue.in_worker, queue.run(lambda: queue.in_worker)

    assert queue.run(outer) == (True, True)


def test_units_never_overlap(queue):
    """Test units submitted from many threads run one at a time"""
    active = []
    overlaps = []
    lock = threading.Lock()

    def unit():
        with lock:
            active.append(1)
            if len(active) > 1:
                overlaps.append(len(active))
        time.sleep(0.001)
        with lock:
            active.pop()

    threads = [threading.Thread(target=lambda: [queue.run(unit) for _ in range(10)])
               for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert queue.completed == 80


def test_fifo_order(queue):
    """Test units complete in submission order"""
    order = []
    gate = threading.Event()
    queue.run(lambda: None)

    blocker = threading.Thread(target=queue.run, args=(gate.wait,))
    blocker.start()
    time.sleep(0.05)

    futures = []
    for i in range(5):
        futures.append(queue._get_executor().submit(order.append, i))
    gate.set()
    for future in futures:
        future.result()
    blocker.join()

    assert order == [0, 1, 2, 3, 4]


def test_shutdown_and_restart(queue):
    queue.run(lambda: None)
    queue.shutdown()
    assert queue.run(lambda: 'again') == 'again'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
