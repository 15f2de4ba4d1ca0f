"""
Authentication module — certificate, client-secret and delegated auth.
Uses MSAL for token acquisition against Microsoft Identity Platform.
"""

from __future__ import annotations

import base64
import getpass
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
import msal

from ..config import (
    APP_SCOPES,
    CERT_PASSWORD_ENV,
    CLIENT_SECRET_ENV,
    LOGIN_AUTHORITY,
    REQUIRED_PERMISSIONS,
    AuthConfig,
)

logger = logging.getLogger("ca_policy_audit.auth")

# AADSTS codes the identity platform returns for expired credentials
_EXPIRED_CREDENTIAL_CODES = ("AADSTS7000222", "AADSTS700027", "AADSTS70008")


class AuthenticationError(Exception):
    """Raised when a session cannot be established."""
    pass


class AuthDenied(AuthenticationError):
    """The identity platform refused the credential or the consent."""
    pass


class AuthExpired(AuthenticationError):
    """The credential or session is expired or was never authenticated."""
    pass


class Authenticator:
    """
    Handles MSAL-based authentication for Microsoft Graph.
    Supports:
      - Certificate-based app-only authentication
      - Client-secret app-only authentication
      - Delegated interactive authentication (device code flow)
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self._access_token: Optional[str] = None

    async def acquire_token(self) -> str:
        """Acquire an access token based on configured auth mode."""
        if self.config.mode == "certificate":
            return self._acquire_certificate_token()
        elif self.config.mode == "secret":
            return self._acquire_secret_token()
        elif self.config.mode == "delegated":
            return self._acquire_delegated_token()
        else:
            raise AuthDenied(f"Unknown auth mode: {self.config.mode}")

    def _acquire_certificate_token(self) -> str:
        """Acquire token using certificate-based client credentials."""
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthDenied("Certificate auth config not provided.")

        logger.info("Authenticating with certificate-based app credentials...")

        password = cert_config.certificate_password
        if not password:
            password = os.environ.get(CERT_PASSWORD_ENV, "")
        if not password:
            password = getpass.getpass("Enter the certificate password: ")

        cert_path = cert_config.certificate_path
        try:
            with open(cert_path, "r") as f:
                cert_bytes = base64.b64decode(f.read().strip())

            private_key, certificate, _ = pkcs12.load_key_and_certificates(
                cert_bytes, password.encode("utf-8") if password else None
            )
        except FileNotFoundError:
            raise AuthDenied(f"Certificate file not found: {cert_path}")
        except OSError as e:
            raise AuthDenied(f"Cannot read certificate {cert_path}: {e}") from e
        except ValueError as e:
            raise AuthDenied(f"Failed to load certificate: {e}")

        if certificate is None or private_key is None:
            raise AuthDenied(f"Certificate bundle {cert_path} lacks a key or certificate")

        if certificate.not_valid_after_utc < datetime.now(timezone.utc):
            raise AuthExpired(
                f"Certificate expired on {certificate.not_valid_after_utc:%Y-%m-%d}"
            )

        thumbprint = certificate.fingerprint(SHA1()).hex()
        logger.info(f"Certificate loaded. Thumbprint: {thumbprint}")

        app = _msal_call(
            "Certificate",
            msal.ConfidentialClientApplication,
            client_id=cert_config.client_id,
            authority=f"{LOGIN_AUTHORITY}/{cert_config.tenant_id}",
            client_credential={
                "thumbprint": thumbprint,
                "private_key": private_key.private_bytes(
                    Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
                ).decode("utf-8"),
            },
        )
        result = _msal_call("Certificate", app.acquire_token_for_client, scopes=APP_SCOPES)
        return self._accept(result, "Certificate")

    def _acquire_secret_token(self) -> str:
        """Acquire token using a client secret."""
        secret_config = self.config.secret
        if not secret_config:
            raise AuthDenied("Client secret auth config not provided.")

        secret = secret_config.client_secret or os.environ.get(CLIENT_SECRET_ENV, "")
        if not secret:
            raise AuthDenied(f"No client secret configured; set {CLIENT_SECRET_ENV}.")

        logger.info("Authenticating with client secret...")
        app = _msal_call(
            "Client secret",
            msal.ConfidentialClientApplication,
            client_id=secret_config.client_id,
            authority=f"{LOGIN_AUTHORITY}/{secret_config.tenant_id}",
            client_credential=secret,
        )
        result = _msal_call("Client secret", app.acquire_token_for_client, scopes=APP_SCOPES)
        return self._accept(result, "Client secret")

    def _acquire_delegated_token(self) -> str:
        """Acquire token using delegated (device code) flow."""
        deleg_config = self.config.delegated
        if not deleg_config:
            raise AuthDenied("Delegated auth config not provided.")

        logger.info("Initiating device code authentication flow...")

        app = _msal_call(
            "Delegated",
            msal.PublicClientApplication,
            client_id=deleg_config.client_id,
            authority=f"{LOGIN_AUTHORITY}/{deleg_config.tenant_id}",
        )

        flow = _msal_call("Delegated", app.initiate_device_flow, scopes=deleg_config.scopes)
        if "user_code" not in flow:
            raise AuthDenied(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )

        print(f"\n{'='*60}")
        print(f"  To sign in, open: {flow['verification_uri']}")
        print(f"  Enter code: {flow['user_code']}")
        print(f"{'='*60}\n")

        result = _msal_call("Delegated", app.acquire_token_by_device_flow, flow)
        return self._accept(result, "Delegated")

    def _accept(self, result: dict, label: str) -> str:
        """Keep the token from an MSAL result or raise the matching error."""
        if "access_token" in result:
            self._access_token = result["access_token"]
            logger.info(f"{label} authentication successful.")
            return self._access_token

        error = result.get("error_description", result.get("error", "Unknown"))
        if any(code in error for code in _EXPIRED_CREDENTIAL_CODES):
            raise AuthExpired(f"{label} auth failed: {error}")
        raise AuthDenied(f"{label} auth failed: {error}")

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @staticmethod
    def list_required_permissions() -> dict[str, str]:
        """Return the map of required Graph API permissions."""
        return REQUIRED_PERMISSIONS


def _msal_call(label: str, func, *args, **kwargs):
    """Run an MSAL call, reporting anything it raises as a denied sign-in."""
    try:
        return func(*args, **kwargs)
    except Exception as e:
        raise AuthDenied(f"{label} auth failed: {type(e).__name__}: {e}") from e
