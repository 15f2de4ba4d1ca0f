"""Reporting package — report model and output adapters."""

from .model import InvalidSelection, PolicyReport, RenderFailure, ReportModel, build_report
from .terminal import TerminalRenderer
from .html_report import HtmlReportRenderer, export_html
from .json_export import EXPORT_KEYS, ExportSelection, export_json, render_export

__all__ = [
    "InvalidSelection",
    "PolicyReport",
    "RenderFailure",
    "ReportModel",
    "build_report",
    "TerminalRenderer",
    "HtmlReportRenderer",
    "export_html",
    "EXPORT_KEYS",
    "ExportSelection",
    "export_json",
    "render_export",
]
