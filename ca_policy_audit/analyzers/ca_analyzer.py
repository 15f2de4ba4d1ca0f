"""
Conditional Access Analyzer
Runs the ordered rule table over each policy: disabled policies, missing
application scope, and missing break-glass exclusions.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..config import AnalysisConfig
from ..models import Policy, PolicyState
from .base import PolicyFinding, Rule, RuleId

logger = logging.getLogger("ca_policy_audit.analyzers.ca")


def _is_disabled(policy: Policy, options: AnalysisConfig) -> bool:
    return policy.state is PolicyState.DISABLED


def _has_no_application_scope(policy: Policy, options: AnalysisConfig) -> bool:
    # An empty list is a configured scope; only a missing one fires
    return policy.conditions is None or policy.conditions.include_applications is None


def _has_no_break_glass_exclusion(policy: Policy, options: AnalysisConfig) -> bool:
    conditions = policy.conditions
    if conditions is None:
        return True

    def unset(ids: Optional[tuple[str, ...]]) -> bool:
        if ids is None:
            return True
        return options.empty_exclusions_as_absent and len(ids) == 0

    return unset(conditions.exclude_users) and unset(conditions.exclude_groups)


RULES: tuple[Rule, ...] = (
    Rule(
        rule_id=RuleId.DISABLED_POLICY,
        predicate=_is_disabled,
        message="Policy is disabled. Enable it if it is still required, otherwise remove it.",
    ),
    Rule(
        rule_id=RuleId.NO_APPLICATION_SCOPE,
        predicate=_has_no_application_scope,
        message="No applications are included. Review the policy scope.",
    ),
    Rule(
        rule_id=RuleId.NO_BREAK_GLASS_EXCLUSION,
        predicate=_has_no_break_glass_exclusion,
        message=(
            "No users or groups are excluded. Exclude break-glass (emergency access) "
            "accounts so an administrator cannot be locked out."
        ),
    ),
)


class RuleEngine:
    """
    Evaluates the rule table against policies.
    Stateless: the same policy always yields the same findings, in table order.
    """

    name = "ca_analyzer"
    description = "Conditional Access policy configuration checks"

    def __init__(
        self,
        rules: Sequence[Rule] = RULES,
        options: Optional[AnalysisConfig] = None,
    ):
        self.rules = tuple(rules)
        self.options = options or AnalysisConfig()

    def evaluate(self, policy: Policy) -> list[PolicyFinding]:
        findings: list[PolicyFinding] = []
        for rule in self.rules:
            findings.extend(rule.check(policy, self.options))
        return findings

    def evaluate_all(self, policies: Iterable[Policy]) -> list[tuple[Policy, list[PolicyFinding]]]:
        results = [(p, self.evaluate(p)) for p in policies]
        total = sum(len(f) for _, f in results)
        logger.info(f"[{self.name}] Analysis complete — {total} findings across {len(results)} policies")
        return results
