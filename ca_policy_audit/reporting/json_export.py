"""
JSON exporter — Portable export of raw policies.

Each exported object carries exactly displayName, state, conditions,
grantControls and sessionControls, copied unmodified from Graph. Ids and
timestamps are left out so the document can be imported elsewhere.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from ..config import OutputConfig
from ..models import Policy
from .model import InvalidSelection, RenderFailure, write_new_file

logger = logging.getLogger("ca_policy_audit.reporting.json")

EXPORT_KEYS = ("displayName", "state", "conditions", "grantControls", "sessionControls")


@dataclass(frozen=True)
class ExportSelection:
    """All policies, or the one at a 0-based ``index``."""
    index: Optional[int] = None

    @classmethod
    def all(cls) -> "ExportSelection":
        return cls()

    @classmethod
    def single(cls, index: int) -> "ExportSelection":
        return cls(index=index)

    @property
    def is_all(self) -> bool:
        return self.index is None

    def resolve(self, policies: Sequence[Policy]) -> list[Policy]:
        if self.index is None:
            return list(policies)
        if not policies:
            raise InvalidSelection("No policies are available to export")
        if not 0 <= self.index < len(policies):
            raise InvalidSelection(
                f"Selection {self.index + 1} is out of range; "
                f"choose 1 to {len(policies)}"
            )
        return [policies[self.index]]


def project(policy: Policy) -> dict:
    """The exported subset of a policy, in contract key order."""
    raw = policy.raw
    return {
        "displayName": raw.get("displayName", policy.display_name),
        "state": raw.get("state", policy.state.value),
        "conditions": raw.get("conditions"),
        "grantControls": raw.get("grantControls"),
        "sessionControls": raw.get("sessionControls"),
    }


def render_export(policies: Sequence[Policy], selection: ExportSelection) -> str:
    """
    Serialize the selected policies as a JSON array.

    Raises:
        InvalidSelection: the index is outside ``[0, len(policies))``.
        RenderFailure: a policy could not be serialized.
    """
    chosen = selection.resolve(policies)
    try:
        return json.dumps([project(p) for p in chosen], indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise RenderFailure(f"Could not serialize policies: {e}") from e


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_") or "policy"


def export_json(
    policies: Sequence[Policy],
    selection: ExportSelection,
    output_dir: Path,
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the export document into ``output_dir``.

    Returns:
        Path to the created JSON file.
    """
    document = render_export(policies, selection)
    stamp = OutputConfig.timestamp(now)
    if selection.is_all:
        filename = f"CA_Policies_Export_{stamp}.json"
    else:
        filename = f"CA_Policy_{_safe_name(policies[selection.index].display_name)}_{stamp}.json"

    output_dir = Path(output_dir)
    try:
        filepath = write_new_file(output_dir, filename, document)
    except OSError as e:
        raise RenderFailure(f"Could not write export {output_dir / filename}: {e}") from e

    if not filepath.exists():
        raise RenderFailure(f"Export file {filepath} was not created")
    logger.info(f"Exported {'all policies' if selection.is_all else filepath.name} to {filepath}")
    return filepath
