"""Shared fixtures: Graph policy payloads, a fake Graph endpoint, fake operator."""

from __future__ import annotations

import json
from typing import Callable, Optional

import httpx
import pytest

from ca_policy_audit.auth.authenticator import AuthDenied
from ca_policy_audit.graph.client import GraphClient
from ca_policy_audit.interaction import Command, ExportTarget
from ca_policy_audit.safety.guardian import SafetyGuardian

ABSENT = object()

POLICIES_URL = "https://graph.microsoft.com/v1.0/identity/conditionalAccess/policies"


def graph_policy(
    policy_id: str = "p1",
    name: str = "Require MFA",
    state: str = "enabled",
    include_users=("All",),
    exclude_users=ABSENT,
    exclude_groups=ABSENT,
    include_applications=ABSENT,
    grant_controls: Optional[dict] = None,
    session_controls: Optional[dict] = None,
) -> dict:
    """A Graph conditionalAccessPolicy object; ABSENT leaves a key out."""
    users = {}
    for key, value in (
        ("includeUsers", include_users),
        ("excludeUsers", exclude_users),
        ("excludeGroups", exclude_groups),
    ):
        if value is not ABSENT:
            users[key] = list(value) if value is not None else None
    conditions = {"users": users, "clientAppTypes": ["all"]}
    if include_applications is not ABSENT:
        conditions["applications"] = {"includeApplications": list(include_applications)}
    return {
        "id": policy_id,
        "displayName": name,
        "state": state,
        "createdDateTime": "2024-03-01T08:30:00Z",
        "modifiedDateTime": "2024-05-02T10:00:00Z",
        "conditions": conditions,
        "grantControls": grant_controls if grant_controls is not None else {
            "operator": "OR", "builtInControls": ["mfa"],
        },
        "sessionControls": session_controls,
    }


def paged_transport(pages: list[list[dict]], calls: Optional[list] = None) -> httpx.MockTransport:
    """Serve ``pages`` from the CA policies endpoint, linked by @odata.nextLink."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        page = int(request.url.params.get("page", "0"))
        body: dict = {"value": pages[page]}
        if page + 1 < len(pages):
            body["@odata.nextLink"] = f"{POLICIES_URL}?page={page + 1}"
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler)


def status_transport(status: int, body: Optional[dict] = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(body or {}).encode())

    return httpx.MockTransport(handler)


class FakeAuthenticator:
    def __init__(self, token: str = "token", error: Optional[Exception] = None):
        self.token = token
        self.error = error
        self.calls = 0

    async def acquire_token(self) -> str:
        self.calls += 1
        if self.error:
            raise self.error
        return self.token


class ScriptedOperator:
    """Replays scripted answers; records the prompts it received."""

    def __init__(self, commands=(), targets=(), confirms=()):
        self.commands = list(commands)
        self.targets = list(targets)
        self.confirms = list(confirms)
        self.export_prompts: list[list[str]] = []

    def select_mode(self) -> Command:
        return self.commands.pop(0)

    def select_export_target(self, policy_names) -> ExportTarget:
        self.export_prompts.append(list(policy_names))
        return self.targets.pop(0)

    def confirm_continue(self) -> bool:
        return self.confirms.pop(0)


class SessionRecorder:
    """session_factory that keeps every GraphClient it builds."""

    def __init__(self, transport: httpx.MockTransport):
        self.transport = transport
        self.sessions: list[GraphClient] = []

    def __call__(self, token: str) -> GraphClient:
        session = GraphClient(token, SafetyGuardian(), transport=self.transport)
        self.sessions.append(session)
        return session


@pytest.fixture
def make_policy() -> Callable[..., dict]:
    return graph_policy


@pytest.fixture
def denied_authenticator() -> FakeAuthenticator:
    return FakeAuthenticator(error=AuthDenied("AADSTS700016: application not found"))
