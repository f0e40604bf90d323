"""
Tests for the result aggregator.
"""

from ollama_checker.concurrent.aggregator import ResultAggregator
from ollama_checker.concurrent.models import ProbeResult
from ollama_checker.concurrent.thread_safe import ThreadSafeQueue


def test_counts_and_buckets():
    queue = ThreadSafeQueue()
    aggregator = ResultAggregator(queue, expected_total=3)
    aggregator.start()

    queue.put(ProbeResult.success("http://a", ["m1"]))
    queue.put(ProbeResult.failure("http://b", "HTTP 500: oops"))
    queue.put(ProbeResult.success("http://c", ["m2"]))
    queue.close()

    assert aggregator.join(timeout=5)
    summary = aggregator.build_summary()

    assert summary.requested == 3
    assert summary.total == 3
    assert summary.succeeded == 2
    assert summary.failed == 1
    assert [r.endpoint for r in summary.successful_results] == ["http://a", "http://c"]
    assert [r.endpoint for r in summary.failed_results] == ["http://b"]
    assert summary.completed_at is not None


def test_progress_hook_sees_running_counts():
    calls = []
    queue = ThreadSafeQueue()
    aggregator = ResultAggregator(
        queue, expected_total=2,
        on_progress=lambda result, processed, total, failed: calls.append((result.endpoint, processed, total, failed))
    )

    aggregator.consume(ProbeResult.failure("http://a", "no available models"))
    aggregator.consume(ProbeResult.success("http://b", ["m"]))

    assert calls == [("http://a", 1, 2, 1), ("http://b", 2, 2, 1)]


def test_failing_progress_hook_does_not_stop_aggregation():
    def broken_hook(*args):
        raise RuntimeError("terminal went away")

    aggregator = ResultAggregator(ThreadSafeQueue(), expected_total=2, on_progress=broken_hook)
    aggregator.consume(ProbeResult.success("http://a", ["m"]))
    aggregator.consume(ProbeResult.success("http://b", ["m"]))

    assert aggregator.succeeded == 2


def test_summary_reports_abandoned_endpoints():
    aggregator = ResultAggregator(ThreadSafeQueue(), expected_total=5)
    aggregator.consume(ProbeResult.success("http://a", ["m"]))

    summary = aggregator.build_summary(cancelled=True)

    assert summary.cancelled
    assert summary.abandoned == 4
