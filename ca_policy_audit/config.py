"""
Configuration module for the Conditional Access Policy Auditor.
Defines authentication settings, Graph API endpoints, and output options.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str = "./base64.txt"  # Path to base64-encoded PFX
    certificate_password: str = ""          # Env var or prompt if empty


@dataclass
class SecretAuth:
    """Client-secret app-only authentication configuration."""
    tenant_id: str
    client_id: str
    client_secret: str = ""                 # Env var if empty


@dataclass
class DelegatedAuth:
    """Delegated (device code) authentication configuration."""
    tenant_id: str
    client_id: str
    scopes: list[str] = field(default_factory=lambda: list(DELEGATED_SCOPES))


@dataclass
class AuthConfig:
    """Authentication configuration — one of three modes."""
    mode: str = "certificate"  # "certificate", "secret" or "delegated"
    certificate: Optional[CertificateAuth] = None
    secret: Optional[SecretAuth] = None
    delegated: Optional[DelegatedAuth] = None


# ─── Graph API Settings ─────────────────────────────────────────────────────

GRAPH_BASE_URL = "https://graph.microsoft.com"
GRAPH_API_VERSION = "v1.0"
LOGIN_AUTHORITY = "https://login.microsoftonline.com"

CA_POLICIES_ENDPOINT = "identity/conditionalAccess/policies"

APP_SCOPES = ["https://graph.microsoft.com/.default"]
DELEGATED_SCOPES = ["Policy.Read.All"]

REQUEST_TIMEOUT_SECONDS = 60.0
CONNECT_TIMEOUT_SECONDS = 30.0

# Pagination
DEFAULT_PAGE_SIZE = 999           # $top; Graph caps CA policy pages itself
MAX_PAGES_PER_ENDPOINT = 1000     # Safety cap on nextLink loops

CERT_PASSWORD_ENV = "CA_AUDIT_CERT_PASSWORD"
CLIENT_SECRET_ENV = "CA_AUDIT_CLIENT_SECRET"


# ─── Analysis Settings ──────────────────────────────────────────────────────

@dataclass
class AnalysisConfig:
    """Controls how the rule table reads policy conditions."""
    # Treat an explicitly empty exclusion list like a missing one
    empty_exclusions_as_absent: bool = False


# ─── Output Configuration ───────────────────────────────────────────────────

@dataclass
class OutputConfig:
    """Output directory settings."""
    base_dir: str = ""

    def __post_init__(self):
        if not self.base_dir:
            self.base_dir = os.path.join(os.getcwd(), "ca_policy_output")

    @property
    def output_dir(self) -> Path:
        return Path(self.base_dir)

    @staticmethod
    def timestamp(now: Optional[datetime] = None) -> str:
        """File-name timestamp, e.g. 20261017_093000."""
        now = now or datetime.now(timezone.utc)
        return now.strftime("%Y%m%d_%H%M%S")


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class AuditConfig:
    """Top-level configuration for one audit run."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    verbose: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "AuditConfig":
        """Load configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        config = cls()
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "certificate")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                )
            if "secret" in auth_data:
                s = auth_data["secret"]
                config.auth.secret = SecretAuth(
                    tenant_id=s["tenant_id"],
                    client_id=s["client_id"],
                    client_secret=s.get("client_secret", ""),
                )
            if "delegated" in auth_data:
                d = auth_data["delegated"]
                config.auth.delegated = DelegatedAuth(
                    tenant_id=d["tenant_id"],
                    client_id=d["client_id"],
                    scopes=d.get("scopes", list(DELEGATED_SCOPES)),
                )
        if "analysis" in data:
            for k, v in data["analysis"].items():
                if hasattr(config.analysis, k):
                    setattr(config.analysis, k, v)
        if "output" in data:
            for k, v in data["output"].items():
                if hasattr(config.output, k):
                    setattr(config.output, k, v)
        config.verbose = data.get("verbose", False)
        return config


# ─── Required Graph API Permissions (Least Privilege, Read-Only) ─────────

REQUIRED_PERMISSIONS = {
    "Policy.Read.All": "Read Conditional Access policies and their conditions",
}
