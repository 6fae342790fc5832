"""
Report Assembly

This module groups findings by file and renders the Markdown review report.
"""

from .assembler import ReportAssembler, wrap_report, write_report

__all__ = ['ReportAssembler', 'wrap_report', 'write_report']
