from __future__ import annotations

import threading

from namereg.errors import NameAlreadyRegistered
from namereg.registry import Registry

from .conftest import det_identity

N_THREADS = 8
PER_THREAD = 40


def _run(workers):
    errors = []

    def wrap(fn):
        def _inner():
            try:
                fn()
            except Exception as e:  # surfaced below
                errors.append(e)
        return _inner

    threads = [threading.Thread(target=wrap(w)) for w in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return errors


def test_contested_name_has_exactly_one_winner(registry):
    barrier = threading.Barrier(N_THREADS)
    winners, losers = [], []
    lock = threading.Lock()

    def claim(i: int):
        me = det_identity(f"racer-{i}")

        def _go():
            barrier.wait()
            try:
                registry.register("contested", "h", det_identity("target"), me)
            except NameAlreadyRegistered:
                with lock:
                    losers.append(me)
            else:
                with lock:
                    winners.append(me)
        return _go

    assert _run([claim(i) for i in range(N_THREADS)]) == []
    assert len(winners) == 1
    assert len(losers) == N_THREADS - 1
    assert registry.resolve("contested").owner == winners[0]
    assert registry.names_owned_by(winners[0]) == ["contested"]
    registry.check_invariants()


def test_parallel_register_and_transfer_conserves_names(registry):
    sink = det_identity("sink")
    barrier = threading.Barrier(N_THREADS)

    def worker(i: int):
        me = det_identity(f"worker-{i}")

        def _go():
            barrier.wait()
            for j in range(PER_THREAD):
                registry.register(f"w{i}-{j}", "h", sink, me)
            for j in range(0, PER_THREAD, 2):
                registry.transfer(f"w{i}-{j}", sink, me)
        return _go

    assert _run([worker(i) for i in range(N_THREADS)]) == []

    registry.check_invariants()
    assert registry.total_names() == N_THREADS * PER_THREAD
    owned = sum(len(registry.names_owned_by(det_identity(f"worker-{i}"))) for i in range(N_THREADS))
    assert owned + len(registry.names_owned_by(sink)) == N_THREADS * PER_THREAD
    assert len(registry.names_owned_by(sink)) == N_THREADS * PER_THREAD // 2


def test_invariants_hold_while_transfers_run(clock):
    reg = Registry(clock=clock)
    a, b = det_identity("ping"), det_identity("pong")
    reg.register("ball", "h", a, a)
    stop = threading.Event()

    def mover():
        src, dst = a, b
        try:
            for _ in range(500):
                reg.transfer("ball", dst, src)
                src, dst = dst, src
        finally:
            stop.set()

    def checker():
        while not stop.is_set():
            reg.check_invariants()
            owner = reg.resolve("ball").owner
            assert owner in (a, b)

    assert _run([mover, checker, checker]) == []
    reg.check_invariants()
    assert len(reg.events) == 501
