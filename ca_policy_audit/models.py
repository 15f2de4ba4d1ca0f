"""
Policy data model — immutable snapshots of Conditional Access policies.

Optional list conditions are tri-state: ``None`` means the condition is not
configured, an empty tuple means it is configured with zero entries, and a
non-empty tuple holds the identifiers (including the ``"All"`` sentinel).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class PolicyState(str, Enum):
    """Graph ``state`` values for a Conditional Access policy."""
    ENABLED = "enabled"
    DISABLED = "disabled"
    REPORT_ONLY = "enabledForReportingButNotEnforced"

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


_STATE_LABELS = {
    PolicyState.ENABLED: "Enabled",
    PolicyState.DISABLED: "Disabled",
    PolicyState.REPORT_ONLY: "Report-only",
}


def _id_list(section: Optional[dict], key: str) -> Optional[tuple[str, ...]]:
    """Read a list condition, keeping absent (None) apart from empty (())."""
    if not isinstance(section, dict):
        return None
    value = section.get(key)
    if value is None:
        return None
    # a bare scalar such as "All" is one entry, not a sequence of characters
    if not isinstance(value, (list, tuple)):
        return (str(value),)
    return tuple(str(v) for v in value)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class Conditions:
    """The subset of policy conditions the rule table inspects."""
    include_users: Optional[tuple[str, ...]] = None
    exclude_users: Optional[tuple[str, ...]] = None
    exclude_groups: Optional[tuple[str, ...]] = None
    include_applications: Optional[tuple[str, ...]] = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_graph(cls, conditions: dict) -> "Conditions":
        users = conditions.get("users")
        applications = conditions.get("applications")
        return cls(
            include_users=_id_list(users, "includeUsers"),
            exclude_users=_id_list(users, "excludeUsers"),
            exclude_groups=_id_list(users, "excludeGroups"),
            include_applications=_id_list(applications, "includeApplications"),
            raw=conditions,
        )


@dataclass(frozen=True)
class Policy:
    """One Conditional Access policy as fetched from Graph."""
    id: str
    display_name: str
    state: PolicyState
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    conditions: Optional[Conditions] = None
    grant_controls: Optional[dict] = None
    session_controls: Optional[dict] = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_graph(cls, item: dict) -> "Policy":
        """
        Build a Policy from a Graph ``conditionalAccessPolicy`` object.
        Raises ValueError for an unknown state.
        """
        conditions = item.get("conditions")
        return cls(
            id=str(item["id"]),
            display_name=item.get("displayName") or "",
            state=PolicyState(item.get("state")),
            created_at=_parse_timestamp(item.get("createdDateTime")),
            modified_at=_parse_timestamp(item.get("modifiedDateTime")),
            conditions=Conditions.from_graph(conditions) if isinstance(conditions, dict) else None,
            grant_controls=item.get("grantControls"),
            session_controls=item.get("sessionControls"),
            raw=item,
        )
