"""
Tests for data models.
"""

from datetime import datetime, timedelta

import pytest

from ollama_checker.concurrent.models import ModelDescriptor, ProbeResult, RunSummary


class TestModelDescriptor:

    def test_from_dict_reads_known_fields(self):
        descriptor = ModelDescriptor.from_dict({
            "name": "llama3:8b",
            "digest": "sha256:abc",
            "size": 42,
            "modified_at": "2024-05-01T10:00:00Z",
            "details": {"family": "llama"}
        })

        assert descriptor.name == "llama3:8b"
        assert descriptor.digest == "sha256:abc"
        assert descriptor.size == 42

    def test_missing_fields_default_to_empty(self):
        descriptor = ModelDescriptor.from_dict({})

        assert descriptor.name == ""
        assert not descriptor.is_valid()

    @pytest.mark.parametrize("data", [
        "llama3",
        {"name": 5},
        {"name": "x", "digest": ["a"]},
        {"name": "x", "size": "big"},
        {"name": "x", "size": True},
    ])
    def test_wrongly_typed_entries_rejected(self, data):
        with pytest.raises(ValueError):
            ModelDescriptor.from_dict(data)

    def test_digest_required_only_in_strict_mode(self):
        descriptor = ModelDescriptor(name="phi3")

        assert descriptor.is_valid()
        assert not descriptor.is_valid(require_digest=True)


class TestProbeResult:

    def test_failure_has_error_and_no_models(self):
        result = ProbeResult.failure("http://a", "no available models", attempts=1)

        assert not result.healthy
        assert result.error == "no available models"
        assert result.models == []

    def test_success_has_no_error(self):
        result = ProbeResult.success("http://a", ["m1"], attempts=3)

        assert result.healthy
        assert result.error is None
        assert result.retries == 2

    def test_results_are_immutable(self):
        result = ProbeResult.success("http://a", ["m1"])

        with pytest.raises(Exception):
            result.healthy = False


class TestRunSummary:

    def test_abandoned_is_requested_minus_processed(self):
        summary = RunSummary(requested=10, total=7, succeeded=4, failed=3, cancelled=True)

        assert summary.abandoned == 3
        assert summary.to_dict()["abandoned"] == 3

    def test_success_rate_and_duration(self):
        started = datetime(2024, 1, 1, 12, 0, 0)
        summary = RunSummary(requested=4, total=4, succeeded=1, failed=3,
                             started_at=started, completed_at=started + timedelta(seconds=2))

        assert summary.get_success_rate() == 25.0
        assert summary.get_execution_time() == 2.0

    def test_empty_summary(self):
        summary = RunSummary(requested=0)

        assert summary.get_success_rate() == 0.0
        assert summary.get_execution_time() is None
        assert summary.abandoned == 0
