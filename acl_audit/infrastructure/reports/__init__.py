"""Report sinks"""
from .writers import ReportFormat, detect_format, rows_for, write_csv, write_report, write_xlsx

__all__ = [
    'ReportFormat',
    'detect_format',
    'rows_for',
    'write_csv',
    'write_report',
    'write_xlsx',
]
