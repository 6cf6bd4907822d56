import threading

import pytest

from paytrack_assist.orchestration.gate import RequestGate


@pytest.mark.unit
def test_gate_admits_one_holder_at_a_time():
    gate = RequestGate()
    assert gate.try_acquire() is True
    assert gate.held is True
    assert gate.try_acquire() is False


@pytest.mark.unit
def test_release_frees_the_gate_and_is_idempotent():
    gate = RequestGate()
    gate.release()  # not held: no error
    assert gate.try_acquire() is True
    gate.release()
    gate.release()
    assert gate.held is False
    assert gate.try_acquire() is True


@pytest.mark.unit
def test_gate_is_exclusive_across_threads():
    gate = RequestGate()
    winners = []
    barrier = threading.Barrier(8)

    def contend():
        barrier.wait()
        if gate.try_acquire():
            winners.append(threading.get_ident())

    threads = [threading.Thread(target=contend) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(winners) == 1
