"""
Audit orchestrator — authenticate, fetch once, then render on request.

One run holds one Graph session and one policy snapshot. Every render in
the session reuses that snapshot. The session is closed on every exit path.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Callable, Optional, Sequence, TextIO

from .analyzers import RuleEngine
from .auth.authenticator import AuthenticationError, Authenticator
from .collectors import ConditionalAccessCollector
from .config import AuditConfig
from .graph.client import GraphClient, RemoteUnavailable
from .interaction import Command, ExportTarget, Operator
from .models import Policy
from .reporting import (
    ExportSelection,
    InvalidSelection,
    RenderFailure,
    TerminalRenderer,
    build_report,
    export_html,
    export_json,
)
from .safety.guardian import SafetyGuardian

logger = logging.getLogger("ca_policy_audit.orchestrator")

EXIT_OK = 0
EXIT_FAILED = 1


class RunState(Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    RENDERING = "rendering"
    EXPORT_SELECTING = "export_selecting"
    FAILED = "failed"


class AuditOrchestrator:
    """Sequences one audit run and returns its exit status."""

    def __init__(
        self,
        authenticator: Authenticator,
        operator: Operator,
        config: AuditConfig,
        guardian: Optional[SafetyGuardian] = None,
        collector: Optional[ConditionalAccessCollector] = None,
        engine: Optional[RuleEngine] = None,
        session_factory: Optional[Callable[[str], GraphClient]] = None,
        stream: Optional[TextIO] = None,
        non_interactive: bool = False,
    ):
        self.authenticator = authenticator
        self.operator = operator
        self.config = config
        self.guardian = guardian or SafetyGuardian()
        self.collector = collector or ConditionalAccessCollector()
        self.engine = engine or RuleEngine(options=config.analysis)
        self.session_factory = session_factory or (lambda token: GraphClient(token, self.guardian))
        self.stream = stream
        self.non_interactive = non_interactive
        self.state = RunState.IDLE
        self.policies: list[Policy] = []

    # ------------------------------------------------------------------ #

    async def run(self) -> int:
        session: Optional[GraphClient] = None
        try:
            self._enter(RunState.AUTHENTICATING)
            self._say("\n🔐 Authenticating...")
            try:
                token = await self.authenticator.acquire_token()
            except AuthenticationError as e:
                return self._fail("Authentication", e)
            self._say("✅ Authentication successful.")

            session = self.session_factory(token)
            await session.open()

            self._enter(RunState.FETCHING)
            self._say("📡 Fetching Conditional Access policies...")
            try:
                self.policies = await self.collector.fetch_all(session)
            except (AuthenticationError, RemoteUnavailable) as e:
                return self._fail("Fetching policies", e)
            self._say(f"✅ {len(self.policies)} policies retrieved.")

            if self.non_interactive:
                self._enter(RunState.RENDERING)
                if not self._render(Command.SHOW_TERMINAL, self.policies):
                    return self._fail("Rendering", RenderFailure("terminal output failed"))
                self._enter(RunState.IDLE)
                return EXIT_OK

            return self._interactive_loop(self.policies)
        except Exception:
            self.state = RunState.FAILED
            raise
        finally:
            await self._teardown(session)

    def _interactive_loop(self, policies: Sequence[Policy]) -> int:
        while True:
            self._enter(RunState.IDLE)
            command = self.operator.select_mode()
            if command is Command.QUIT:
                break

            if command is Command.EXPORT_JSON:
                self._enter(RunState.EXPORT_SELECTING)
                if not self._export(policies):
                    continue
            else:
                self._enter(RunState.RENDERING)
                self._render(command, policies)

            if not self.operator.confirm_continue():
                break

        self._enter(RunState.IDLE)
        self._say("\n👋 Done.")
        return EXIT_OK

    # ------------------------------------------------------------------ #

    def _render(self, command: Command, policies: Sequence[Policy]) -> bool:
        """Build a fresh report and hand it to the chosen adapter."""
        report = build_report(policies, self.engine)
        try:
            if command is Command.SHOW_TERMINAL:
                TerminalRenderer(self.stream).render(report)
            else:
                path = export_html(report, self.config.output.output_dir)
                self._say(f"  🌐 HTML:  {path}")
        except (RenderFailure, OSError) as e:
            self._say(f"❌ Report generation failed: {e}")
            logger.error(f"Render failed for {command.value}: {e}")
            return False
        return True

    def _export(self, policies: Sequence[Policy]) -> bool:
        """Export until the operator picks a valid target or goes back."""
        names = [p.display_name for p in policies]
        while True:
            target: ExportTarget = self.operator.select_export_target(names)
            if target.kind == "back":
                return False

            if target.kind == "all":
                selection = ExportSelection.all()
            else:
                selection = ExportSelection.single(target.number - 1)

            try:
                path = export_json(policies, selection, self.config.output.output_dir)
            except InvalidSelection as e:
                self._say(f"❌ Invalid selection: {e}")
                continue
            except (RenderFailure, OSError) as e:
                self._say(f"❌ Export failed: {e}")
                logger.error(f"Export failed: {e}")
                return True

            self._say(f"  📄 JSON:  {path}")
            return True

    # ------------------------------------------------------------------ #

    def _enter(self, state: RunState):
        logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, phase: str, error: Exception) -> int:
        self._enter(RunState.FAILED)
        self._say(f"❌ {phase} failed: {error}")
        logger.error(f"{phase} failed: {type(error).__name__}: {error}")
        return EXIT_FAILED

    async def _teardown(self, session: Optional[GraphClient]):
        if session is not None:
            await session.aclose()
            self._say("🔒 Graph session closed.")

    def _say(self, message: str):
        print(message, file=self.stream or sys.stdout)
