"""
Tests for CSV export and the console reporter.
"""

import io
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ollama_checker.concurrent.models import ProbeResult, RunSummary
from ollama_checker.services.exporter import format_csv, format_models, export_csv, ensure_writable
from ollama_checker.services.reporter import ConsoleReporter
from ollama_checker.utils.errors import ExportError


class TestCsvFormat:

    def test_header_and_joined_models(self):
        results = [ProbeResult.success("http://a", ["m1", "m2"])]

        assert format_csv(results) == "URL,Model\nhttp://a,m1; m2\n"

    def test_empty_model_list_uses_sentinel(self):
        assert format_models([]) == "no models"

    def test_header_only_without_results(self):
        assert format_csv([]) == "URL,Model\n"

    def test_fields_with_commas_are_quoted(self):
        results = [ProbeResult.success("http://a/?x=1,2", ["m"])]

        assert format_csv(results) == 'URL,Model\n"http://a/?x=1,2",m\n'


class TestCsvExport:

    def test_export_replaces_previous_content(self, tmp_path):
        path = tmp_path / "out" / "healthy.csv"
        export_csv([ProbeResult.success("http://old", ["m"])], str(path))
        export_csv([ProbeResult.success("http://new", ["a", "b"])], str(path))

        assert path.read_text(encoding="utf-8") == "URL,Model\nhttp://new,a; b\n"

    def test_export_writes_lf_line_endings(self, tmp_path):
        path = tmp_path / "healthy.csv"
        export_csv([ProbeResult.success("http://a", ["m"])], str(path))

        assert b"\r\n" not in path.read_bytes()

    def test_unwritable_path_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(ExportError):
            export_csv([], str(blocker / "healthy.csv"))

        with pytest.raises(ExportError):
            ensure_writable(str(blocker / "healthy.csv"))

    def test_ensure_writable_keeps_existing_content(self, tmp_path):
        path = tmp_path / "healthy.csv"
        path.write_text("URL,Model\n")

        assert ensure_writable(str(path)) == path
        assert path.read_text() == "URL,Model\n"


class TestConsoleReporter:

    def test_healthy_endpoint_line(self):
        stream = io.StringIO()
        reporter = ConsoleReporter(stream=stream, show_progress=False, use_color=False)

        reporter.on_result(ProbeResult.success("http://a", ["m1", "m2"]), 1, 2, 0)
        reporter.on_result(ProbeResult.failure("http://b", "HTTP 500: "), 2, 2, 1)

        assert stream.getvalue() == "✓ http://a [m1; m2]\n"

    def test_progress_line(self):
        stream = io.StringIO()
        reporter = ConsoleReporter(stream=stream, use_color=False)

        reporter.on_result(ProbeResult.failure("http://b", "HTTP 500: "), 3, 10, 2)

        assert "Processed: 3/10 | Failed: 2" in stream.getvalue()

    def test_summary_block(self):
        stream = io.StringIO()
        reporter = ConsoleReporter(stream=stream, use_color=False)
        started = datetime(2024, 1, 1)
        summary = RunSummary(requested=5, total=4, succeeded=3, failed=1, cancelled=True,
                             started_at=started, completed_at=started + timedelta(seconds=1.5))

        reporter.print_summary(summary, export_path=Path("healthy.csv"), log_path=Path("logs/run.log"))
        output = stream.getvalue()

        assert "Healthy:    3" in output
        assert "Unhealthy:  1" in output
        assert "Abandoned:  1" in output
        assert "Duration:   1.5s" in output
        assert "Exported:   healthy.csv" in output
