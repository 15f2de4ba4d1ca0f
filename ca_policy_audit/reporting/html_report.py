"""
HTML Policy Report — single-file HTML output.

Generates a self-contained HTML report with inline CSS: a header with the
generation time, summary counts, and one table row per policy listing its
recommendations. Everything taken from the tenant is escaped.
"""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Any

from ..config import OutputConfig
from ..models import PolicyState
from .model import PolicyReport, RenderFailure, ReportModel, write_new_file

logger = logging.getLogger("ca_policy_audit.reporting.html")


# ---------------------------------------------------------------------------
# Colour palette
# ---------------------------------------------------------------------------
_STATE_COLOURS = {
    PolicyState.ENABLED: {"bg": "#16a34a", "fg": "#fff"},
    PolicyState.DISABLED: {"bg": "#dc2626", "fg": "#fff"},
    PolicyState.REPORT_ONLY: {"bg": "#d97706", "fg": "#fff"},
}

# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def _esc(val: Any) -> str:
    if val is None:
        return ""
    return html.escape(str(val))


def _state_badge(state: PolicyState) -> str:
    c = _STATE_COLOURS[state]
    return (
        f'<span class="badge" style="background:{c["bg"]};color:{c["fg"]}">'
        f'{_esc(state.label)}</span>'
    )


def _policy_row(entry: PolicyReport) -> str:
    items = "".join(f"<li>{_esc(f.message)}</li>" for f in entry.findings)
    row_class = "policy-row clean" if not entry.findings else "policy-row"
    return f"""
        <tr class="{row_class}">
          <td class="col-name">{_esc(entry.policy.display_name)}</td>
          <td class="col-state">{_state_badge(entry.policy.state)}</td>
          <td class="col-findings"><ul>{items}</ul></td>
        </tr>"""


# ---------------------------------------------------------------------------
# Main renderer
# ---------------------------------------------------------------------------

def _render_html(report: ReportModel, generated_at: str) -> str:
    """Build the full HTML string."""
    rows_html = "\n".join(_policy_row(e) for e in report)
    total = len(report)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Conditional Access Policy Report</title>
<style>
*, *::before, *::after {{ box-sizing: border-box; margin: 0; padding: 0; }}
html {{ font-size: 15px; }}
body {{
  font-family: "Segoe UI", -apple-system, BlinkMacSystemFont, Roboto, "Helvetica Neue", sans-serif;
  background: #f8fafc; color: #1e293b; line-height: 1.55;
}}
.page {{ max-width: 1100px; margin: 0 auto; padding: 2rem 1.5rem; }}
.report-header {{
  background: linear-gradient(135deg, #0f172a 0%, #1e3a5f 100%);
  color: #f1f5f9; padding: 2rem 2.5rem; border-radius: 12px; margin-bottom: 2rem;
}}
.report-header h1 {{ font-size: 1.6rem; font-weight: 700; margin-bottom: .3rem; }}
.report-header .subtitle {{ font-size: .85rem; opacity: .75; }}
.summary {{ display: flex; gap: 1.5rem; margin-bottom: 2rem; }}
.summary .stat {{
  background: #fff; border-radius: 12px; padding: 1rem 1.5rem;
  box-shadow: 0 1px 3px rgba(0,0,0,.08);
}}
.summary .stat strong {{ display: block; font-size: 1.6rem; }}
table {{ width: 100%; border-collapse: collapse; background: #fff; border-radius: 12px; overflow: hidden; }}
th, td {{ text-align: left; padding: .7rem 1rem; border-bottom: 1px solid #e2e8f0; vertical-align: top; }}
th {{ background: #f1f5f9; font-size: .8rem; text-transform: uppercase; letter-spacing: .04em; }}
td ul {{ padding-left: 1.1rem; }}
.policy-row.clean .col-findings {{ color: #64748b; }}
.badge {{ display: inline-block; padding: .1rem .55rem; border-radius: 999px; font-size: .75rem; font-weight: 600; }}
.footer {{ margin-top: 2rem; font-size: .75rem; color: #64748b; text-align: center; }}
</style>
</head>
<body>
<div class="page">

  <header class="report-header">
    <h1>Conditional Access Policy Report</h1>
    <div class="subtitle">Generated {_esc(generated_at)}</div>
  </header>

  <section class="summary">
    <div class="stat"><strong>{total}</strong>Policies</div>
    <div class="stat"><strong>{report.finding_count}</strong>Recommendations</div>
    <div class="stat"><strong>{report.clean_count}</strong>Clean policies</div>
  </section>

  <section class="report-section">
    <table class="policy-table">
      <thead>
        <tr>
          <th>Policy Name</th>
          <th>State</th>
          <th>Recommendations</th>
        </tr>
      </thead>
      <tbody>
        {rows_html}
      </tbody>
    </table>
  </section>

  <div class="footer">
    Conditional Access Policy Auditor &middot; Read-Only &middot; {_esc(generated_at)}
  </div>

</div>
</body>
</html>"""


class HtmlReportRenderer:
    """Renders a ReportModel into a self-contained HTML document."""

    def render(self, report: ReportModel) -> str:
        generated_at = report.generated_at.strftime("%Y-%m-%d %H:%M:%S UTC")
        return _render_html(report, generated_at)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def export_html(report: ReportModel, output_dir: Path) -> Path:
    """
    Write the HTML report into ``output_dir``.

    Returns the Path to the written file. Raises RenderFailure when the
    file cannot be written.
    """
    output_dir = Path(output_dir)
    content = HtmlReportRenderer().render(report)
    filename = f"CA_Policy_Report_{OutputConfig.timestamp(report.generated_at)}.html"

    try:
        filepath = write_new_file(output_dir, filename, content)
    except OSError as e:
        raise RenderFailure(f"Could not write HTML report {output_dir / filename}: {e}") from e

    if not filepath.exists():
        raise RenderFailure(f"HTML report {filepath} was not created")
    logger.info(f"HTML report written to {filepath}")
    return filepath
