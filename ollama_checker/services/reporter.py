"""
Console progress display and run summary.
"""

import sys
import time
from pathlib import Path
from typing import Optional, TextIO

from ollama_checker.concurrent.models import ProbeResult, RunSummary
from ollama_checker.services.exporter import format_models


GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"
CLEAR_LINE = "\033[2K\r"


class ConsoleReporter:
    """
    Prints one line per healthy endpoint and keeps a progress line at the
    bottom of the terminal. Called from the aggregator thread only.
    """

    def __init__(self, stream: Optional[TextIO] = None, show_progress: bool = True,
                 use_color: Optional[bool] = None):
        self.stream = stream or sys.stdout
        self.show_progress = show_progress
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color
        self.start_time = time.time()
        self._progress_drawn = False

    def _color(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_color else text

    def _clear_progress(self) -> None:
        if self._progress_drawn:
            self.stream.write(CLEAR_LINE if self.use_color else "\r")
            self._progress_drawn = False

    def on_result(self, result: ProbeResult, processed: int, total: int, failed: int) -> None:
        """Progress hook for the aggregator."""
        if result.healthy:
            self._clear_progress()
            self.stream.write(f"{self._color('✓', GREEN)} {result.endpoint} [{format_models(result.models)}]\n")

        if self.show_progress:
            self._clear_progress()
            elapsed = time.time() - self.start_time
            rate = f"{processed / elapsed:.1f}/s" if elapsed > 0 else "--/s"
            line = f"Processed: {processed}/{total} | Failed: {failed} | {rate}"
            self.stream.write("\r" + self._color(line, YELLOW))
            self._progress_drawn = True

        self.stream.flush()

    def print_summary(self, summary: RunSummary, export_path: Optional[Path] = None,
                      log_path: Optional[Path] = None) -> None:
        """Print the final summary block."""
        self._clear_progress()
        out = self.stream
        out.write("\n")
        out.write("=" * 60 + "\n")
        out.write("Check complete\n")
        out.write("=" * 60 + "\n")
        out.write(f"Endpoints:  {summary.requested}\n")
        out.write(f"Healthy:    {self._color(str(summary.succeeded), GREEN)}\n")
        out.write(f"Unhealthy:  {self._color(str(summary.failed), RED)}\n")

        if summary.abandoned:
            out.write(f"Abandoned:  {summary.abandoned} (run cancelled before they were probed)\n")

        execution_time = summary.get_execution_time()
        if execution_time is not None:
            out.write(f"Duration:   {execution_time:.1f}s\n")

        if export_path is not None:
            out.write(f"Exported:   {export_path}\n")

        if log_path is not None:
            out.write(f"Log file:   {log_path}\n")

        out.write("=" * 60 + "\n")
        out.flush()
