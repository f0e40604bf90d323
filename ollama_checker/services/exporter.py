"""
CSV export of healthy endpoints.
"""

import csv
import io
from pathlib import Path
from typing import Iterable

from ollama_checker.concurrent.models import ProbeResult
from ollama_checker.utils.errors import ExportError
from ollama_checker.utils.logging import log_business_operation


CSV_HEADER = ["URL", "Model"]
MODEL_SEPARATOR = "; "
NO_MODELS = "no models"


def format_models(models: Iterable[str]) -> str:
    """Join model names for the ``Model`` column."""
    models = list(models)
    if not models:
        return NO_MODELS
    return MODEL_SEPARATOR.join(models)


def format_csv(results: Iterable[ProbeResult]) -> str:
    """
    Render results as CSV text.

    Args:
        results: Healthy probe results, in the order they should appear

    Returns:
        CSV text with a ``URL,Model`` header and one row per endpoint
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for result in results:
        writer.writerow([result.endpoint, format_models(result.models)])
    return output.getvalue()


def ensure_writable(path: str) -> Path:
    """
    Check that the export file can be created before any probing starts.

    Raises:
        ExportError: If the file or its directory cannot be written
    """
    export_path = Path(path)
    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        with open(export_path, 'a', encoding='utf-8'):
            pass
    except OSError as e:
        raise ExportError(f"Cannot open export file: {path}", {"path": str(export_path), "error": str(e)})
    return export_path


@log_business_operation('checker', 'CSV export')
def export_csv(results: Iterable[ProbeResult], path: str) -> Path:
    """
    Write results to a CSV file, replacing any previous content.

    Raises:
        ExportError: If the file cannot be written
    """
    export_path = Path(path)
    content = format_csv(results)
    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        export_path.write_text(content, encoding='utf-8', newline='')
    except OSError as e:
        raise ExportError(f"Failed to write export file: {path}", {"path": str(export_path), "error": str(e)})
    return export_path
