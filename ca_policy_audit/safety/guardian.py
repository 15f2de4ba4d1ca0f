"""
Safety Guardian — Keeps the auditor strictly read-only.
Every outbound Graph request passes through validate_request() first.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("ca_policy_audit.safety")

READ_METHODS = {"GET", "HEAD"}


class SafetyViolation(Exception):
    """Raised when anything other than a read is attempted."""
    pass


class SafetyGuardian:
    """
    Validates every outbound HTTP request to ensure read-only operation.
    Keeps an audit trail of checks and blocked attempts.
    """

    def __init__(self):
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def validate_request(self, method: str, url: str, body: Optional[dict] = None) -> bool:
        """Return True for a read; record and raise SafetyViolation otherwise."""
        self.checks_performed += 1
        method_upper = method.upper()
        if method_upper in READ_METHODS:
            return True

        self._record_violation(method_upper, url, "Non-read HTTP method blocked")
        raise SafetyViolation(f"SAFETY VIOLATION: Write method blocked: {method_upper} {url}")

    def _record_violation(self, method: str, url: str, reason: str):
        self.violations.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "url": url,
            "reason": reason,
        })
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")

    def get_audit_record(self) -> dict:
        """Return the safety audit record for this run."""
        return {
            "mode": "READ-ONLY",
            "started_at": self.started_at,
            "checks_performed": self.checks_performed,
            "violations_detected": len(self.violations),
            "violations": self.violations,
            "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
        }

    @staticmethod
    def print_banner():
        """Print the read-only warning banner."""
        enc = getattr(sys.stdout, "encoding", "") or ""
        unicode_ok = (
            sys.stdout.isatty()
            and enc.lower().replace("-", "") in ("utf8", "utf16", "utf32")
        )

        if unicode_ok:
            try:
                print("╔" + "═" * 68 + "╗")
                print("║  CONDITIONAL ACCESS POLICY AUDIT — READ-ONLY" + " " * 23 + "║")
                print("║  * Policies are read, never modified" + " " * 31 + "║")
                print("║  * Safety Guardian blocks every non-GET request" + " " * 20 + "║")
                print("╚" + "═" * 68 + "╝")
                return
            except UnicodeEncodeError:
                pass  # fall through to ASCII banner

        print("=" * 70)
        print("  CONDITIONAL ACCESS POLICY AUDIT -- READ-ONLY")
        print("  * Policies are read, never modified")
        print("  * Safety Guardian blocks every non-GET request")
        print("=" * 70)
