from .base import PolicyFinding, Rule, RuleId
from .ca_analyzer import RULES, RuleEngine

__all__ = [
    "PolicyFinding",
    "Rule",
    "RuleId",
    "RULES",
    "RuleEngine",
]
