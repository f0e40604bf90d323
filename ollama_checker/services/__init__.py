"""
Boundary services: CSV export and console reporting.
"""

from .exporter import format_csv, export_csv, ensure_writable, format_models
from .reporter import ConsoleReporter

__all__ = [
    'format_csv',
    'export_csv',
    'ensure_writable',
    'format_models',
    'ConsoleReporter'
]
