"""
Conditional Access Policy Auditor — command-line entry point

Usage:
    python -m ca_policy_audit --tenant-id <GUID> --client-id <GUID>     # certificate auth
    python -m ca_policy_audit --config config.json                      # JSON config file
    python -m ca_policy_audit --auth-mode delegated --tenant-id ... --client-id ...
    python -m ca_policy_audit --config config.json --non-interactive    # show once and exit

This tool is STRICTLY READ-ONLY. It never modifies a policy.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .auth.authenticator import Authenticator
from .config import AuditConfig, CertificateAuth, DelegatedAuth, SecretAuth
from .interaction import ConsoleOperator
from .orchestrator import AuditOrchestrator
from .safety.guardian import SafetyGuardian


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ca-policy-audit",
        description="Conditional Access Policy Auditor (READ-ONLY)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to JSON configuration file",
    )
    parser.add_argument(
        "--auth-mode",
        choices=["certificate", "secret", "delegated"],
        default=None,
        help="Authentication flow (default: certificate, or the config file's mode)",
    )
    parser.add_argument(
        "--tenant-id",
        type=str,
        default=None,
        help="Tenant ID (overrides config file)",
    )
    parser.add_argument(
        "--client-id",
        type=str,
        default=None,
        help="App registration client ID (overrides config file)",
    )
    parser.add_argument(
        "--cert-path",
        type=Path,
        help="Path to base64-encoded PFX certificate (default: ./base64.txt)",
    )
    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=None,
        help="Directory for HTML reports and JSON exports (default: ./ca_policy_output)",
    )
    parser.add_argument(
        "--non-interactive", "-n",
        action="store_true",
        help="Skip the menu: show the policies in the terminal once, then exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AuditConfig:
    """Build the run configuration from a config file and CLI overrides."""
    if args.config:
        if not args.config.exists():
            print(f"\n❌ Config file not found: {args.config}")
            sys.exit(1)
        config = AuditConfig.from_file(args.config)
    else:
        config = AuditConfig()

    if args.auth_mode:
        config.auth.mode = args.auth_mode
    if args.verbose:
        config.verbose = True
    if args.output_dir:
        config.output.base_dir = str(args.output_dir)

    auth = config.auth
    configured = auth.certificate or auth.secret or auth.delegated
    tenant_id = args.tenant_id or (configured.tenant_id if configured else None)
    client_id = args.client_id or (configured.client_id if configured else None)
    if not tenant_id or not client_id:
        print("\n❌ No tenant credentials found. Use one of:")
        print("   • --tenant-id X --client-id Y  (ad-hoc)")
        print("   • --config config.json         (JSON config file)")
        sys.exit(1)

    if auth.mode == "certificate":
        cert = auth.certificate or CertificateAuth(tenant_id=tenant_id, client_id=client_id)
        cert.tenant_id, cert.client_id = tenant_id, client_id
        if args.cert_path:
            cert.certificate_path = str(args.cert_path)
        auth.certificate = cert
    elif auth.mode == "secret":
        secret = auth.secret or SecretAuth(tenant_id=tenant_id, client_id=client_id)
        secret.tenant_id, secret.client_id = tenant_id, client_id
        auth.secret = secret
    elif auth.mode == "delegated":
        deleg = auth.delegated or DelegatedAuth(tenant_id=tenant_id, client_id=client_id)
        deleg.tenant_id, deleg.client_id = tenant_id, client_id
        auth.delegated = deleg
    else:
        print(f"\n❌ Unknown auth mode: {auth.mode}")
        sys.exit(1)

    return config


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


async def main_async(argv: Optional[Sequence[str]] = None) -> int:
    """Async entry point; returns the process exit status."""
    args = parse_args(argv)
    config = build_config(args)
    configure_logging(config.verbose)

    guardian = SafetyGuardian()
    guardian.print_banner()
    print(f" Conditional Access Policy Auditor v{__version__}")
    print(f" 📂 Output: {config.output.output_dir.resolve()}")

    orchestrator = AuditOrchestrator(
        authenticator=Authenticator(config.auth),
        operator=ConsoleOperator(),
        config=config,
        guardian=guardian,
        non_interactive=args.non_interactive,
    )
    return await orchestrator.run()


def main(argv: Optional[Sequence[str]] = None):
    """Synchronous entry point for `python -m ca_policy_audit`."""
    try:
        status = asyncio.run(main_async(argv))
    except KeyboardInterrupt:
        print("\n❌ Interrupted.")
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
