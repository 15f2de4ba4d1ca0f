"""
Terminal renderer — fixed-format text block per policy on a text stream.
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional, TextIO

from .model import PolicyReport, ReportModel

_RULE = "-" * 70


def _fmt_time(value: Optional[datetime]) -> str:
    if value is None:
        return "—"
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


class TerminalRenderer:
    """Writes the report to ``stream`` (standard output by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def render(self, report: ReportModel) -> None:
        out = self.stream or sys.stdout
        print(f"\n  Conditional Access Policies ({len(report)})", file=out)
        print(_RULE, file=out)
        for entry in report:
            for line in self._policy_lines(entry):
                print(line, file=out)
            print(_RULE, file=out)
        print(
            f"  {report.finding_count} recommendation(s); "
            f"{report.clean_count} of {len(report)} policies clean.",
            file=out,
        )

    @staticmethod
    def _policy_lines(entry: PolicyReport) -> list[str]:
        policy = entry.policy
        lines = [
            f"  Policy Name:     {policy.display_name}",
            f"  State:           {policy.state.label}",
            f"  Created:         {_fmt_time(policy.created_at)}",
            f"  Modified:        {_fmt_time(policy.modified_at)}",
        ]
        conditions = policy.conditions
        if conditions is not None and conditions.include_users:
            lines.append(f"  Included Users:  {', '.join(conditions.include_users)}")
        if conditions is not None and conditions.exclude_users:
            lines.append(f"  Excluded Users:  {', '.join(conditions.exclude_users)}")
        for finding in entry.findings:
            lines.append(f"  ⚠  {finding.message}")
        return lines
