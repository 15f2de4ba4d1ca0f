"""
Base analyzer types — the finding model and the rule contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..config import AnalysisConfig
from ..models import Policy


class RuleId(str, Enum):
    """Identifies which rule produced a finding."""
    DISABLED_POLICY = "DisabledPolicy"
    NO_APPLICATION_SCOPE = "NoApplicationScope"
    NO_BREAK_GLASS_EXCLUSION = "NoBreakGlassExclusion"


@dataclass(frozen=True)
class PolicyFinding:
    """A single observation about one policy. Nothing is remediated."""
    policy_id: str
    rule_id: RuleId
    message: str
    severity: str = "informational"

    def to_dict(self) -> dict:
        return {
            "policy_id": self.policy_id,
            "rule_id": self.rule_id.value,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class Rule:
    """A pure predicate over a policy plus the message it reports."""
    rule_id: RuleId
    predicate: Callable[[Policy, AnalysisConfig], bool]
    message: str
    severity: str = "informational"

    def check(self, policy: Policy, options: AnalysisConfig) -> list[PolicyFinding]:
        if not self.predicate(policy, options):
            return []
        return [PolicyFinding(
            policy_id=policy.id,
            rule_id=self.rule_id,
            message=self.message.format(name=policy.display_name),
            severity=self.severity,
        )]
