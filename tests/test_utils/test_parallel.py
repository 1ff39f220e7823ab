"""Tests for the thread-pool fan-out helper."""

import os
import threading

import pytest

from framestab.utils.parallel import resolve_workers, run_parallel


class TestResolveWorkers:
    def test_none_means_cpu_count(self):
        assert resolve_workers(None) == (os.cpu_count() or 1)

    def test_explicit(self):
        assert resolve_workers(3) == 3


class TestRunParallel:
    @pytest.mark.parametrize("workers", [1, 2, 8])
    def test_results_in_input_order(self, workers):
        assert run_parallel(lambda x: x * x, range(20), workers=workers) == [x * x for x in range(20)]

    def test_single_worker_runs_in_caller_thread(self):
        caller = threading.get_ident()
        threads = run_parallel(lambda _: threading.get_ident(), range(4), workers=1)
        assert set(threads) == {caller}

    def test_empty_input(self):
        assert run_parallel(lambda x: x, [], workers=4) == []

    def test_exception_propagates_after_barrier(self):
        done = []

        def task(x):
            if x == 3:
                raise RuntimeError("boom")
            done.append(x)
            return x

        with pytest.raises(RuntimeError, match="boom"):
            run_parallel(task, range(8), workers=4)
        assert sorted(done) == [0, 1, 2, 4, 5, 6, 7]
