"""
Unit tests for the ordered worker pool and cancellation token.
"""

import random
import threading
import time

import pytest

from photoclean.exceptions import AnalysisCancelled, ItemReadError
from photoclean.models import ItemResult, SkipReason
from photoclean.pipeline.workers import CancellationToken, process_item, run_ordered


def _read(ref):
    return ref.encode()


class TestProcessItem:
    """Test process_item function."""

    def test_success(self):
        result = process_item('a', _read, len)
        assert result.ok
        assert result.value == 1

    def test_read_failure(self):
        def failing_read(ref):
            raise ItemReadError(ref, "gone")

        result = process_item('a', failing_read, len)
        assert not result.ok
        assert result.reason is SkipReason.READ_FAILED
        assert 'gone' in result.detail

    def test_compute_failure(self):
        def broken(data):
            raise RuntimeError("decoder exploded")

        result = process_item('a', _read, broken)
        assert result.reason is SkipReason.COMPUTE_FAILED

    def test_none_result_is_failure(self):
        result = process_item('a', _read, lambda data: None)
        assert result.reason is SkipReason.COMPUTE_FAILED


class TestRunOrdered:
    """Test run_ordered function."""

    def test_results_in_input_order(self):
        """Test that results come back in input order despite uneven timing."""
        refs = [f"img{i}" for i in range(30)]

        def task(ref):
            time.sleep(random.uniform(0, 0.005))
            return ItemResult.success(ref, ref.upper())

        results = run_ordered(refs, task, max_workers=4)
        assert [r.ref for r in results] == refs
        assert [r.value for r in results] == [r.upper() for r in refs]

    def test_bounded_in_flight(self):
        """Test that no more than max_workers tasks run at once."""
        lock = threading.Lock()
        state = {'running': 0, 'peak': 0}

        def task(ref):
            with lock:
                state['running'] += 1
                state['peak'] = max(state['peak'], state['running'])
            time.sleep(0.002)
            with lock:
                state['running'] -= 1
            return ItemResult.success(ref, 1)

        run_ordered([str(i) for i in range(20)], task, max_workers=3)
        assert 1 <= state['peak'] <= 3

    def test_on_result_counts(self):
        seen = []
        run_ordered(['a', 'b', 'c'], lambda r: ItemResult.success(r, 1), max_workers=2,
                    on_result=lambda count, result: seen.append((count, result.ref)))
        assert seen == [(1, 'a'), (2, 'b'), (3, 'c')]

    def test_empty_input(self):
        assert run_ordered([], lambda r: ItemResult.success(r, 1)) == []

    def test_already_cancelled(self):
        """Test that a cancelled token stops the pool before any work."""
        token = CancellationToken()
        token.cancel()
        calls = []

        def task(ref):
            calls.append(ref)
            return ItemResult.success(ref, 1)

        with pytest.raises(AnalysisCancelled):
            run_ordered(['a', 'b'], task, cancel_token=token)
        assert calls == []

    def test_cancel_during_run(self):
        """Test that cancellation is observed at the next check interval."""
        token = CancellationToken()
        refs = [str(i) for i in range(100)]
        seen = []

        def on_result(count, result):
            seen.append(result.ref)
            if count == 3:
                token.cancel()

        with pytest.raises(AnalysisCancelled):
            run_ordered(refs, lambda r: ItemResult.success(r, 1), max_workers=2,
                        cancel_token=token, check_interval=5, on_result=on_result)

        # Checked after the 5th collected item
        assert len(seen) == 5


class TestCancellationToken:
    """Test CancellationToken class."""

    def test_initial_state(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(AnalysisCancelled):
            token.raise_if_cancelled()
