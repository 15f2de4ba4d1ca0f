"""
Report model — per-policy findings in fetch order, independent of format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..analyzers import PolicyFinding, RuleEngine
from ..models import Policy


class InvalidSelection(Exception):
    """The requested export index is outside the fetched policies."""
    pass


class RenderFailure(Exception):
    """An output adapter could not serialize or write its document."""
    pass


@dataclass(frozen=True)
class PolicyReport:
    policy: Policy
    findings: tuple[PolicyFinding, ...] = ()


@dataclass
class ReportModel:
    entries: list[PolicyReport] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __iter__(self) -> Iterator[PolicyReport]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def policies(self) -> list[Policy]:
        return [e.policy for e in self.entries]

    @property
    def finding_count(self) -> int:
        return sum(len(e.findings) for e in self.entries)

    @property
    def clean_count(self) -> int:
        return sum(1 for e in self.entries if not e.findings)


def build_report(
    policies: Sequence[Policy],
    engine: RuleEngine,
    now: Optional[datetime] = None,
) -> ReportModel:
    """Evaluate every policy and collect the results in fetch order."""
    entries = [
        PolicyReport(policy=policy, findings=tuple(findings))
        for policy, findings in engine.evaluate_all(policies)
    ]
    return ReportModel(entries=entries, generated_at=now or datetime.now(timezone.utc))


def write_new_file(output_dir: Path, filename: str, content: str) -> Path:
    """
    Write ``content`` to a file that does not exist yet.

    An existing ``name.ext`` is kept and the document goes to ``name_2.ext``,
    ``name_3.ext`` and so on. OSError from the filesystem propagates.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    base = output_dir / filename
    candidate, n = base, 1
    while True:
        try:
            with open(candidate, "x", encoding="utf-8") as f:
                f.write(content)
            return candidate
        except FileExistsError:
            n += 1
            candidate = base.with_name(f"{base.stem}_{n}{base.suffix}")
