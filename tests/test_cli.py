"""Tests for the console operator, configuration loading and the CLI."""

import json

import pytest

from ca_policy_audit.__main__ import build_config, parse_args
from ca_policy_audit.config import AuditConfig
from ca_policy_audit.interaction import Command, ConsoleOperator, ExportTarget


def console(*answers):
    replies = iter(answers)
    printed = []
    operator = ConsoleOperator(prompt=lambda _: next(replies), echo=lambda *a: printed.append(" ".join(map(str, a))))
    return operator, printed


class TestConsoleOperator:
    @pytest.mark.parametrize("answer, command", [
        ("1", Command.SHOW_TERMINAL),
        ("2", Command.GENERATE_REPORT),
        ("3", Command.EXPORT_JSON),
        ("Q", Command.QUIT),
    ])
    def test_menu(self, answer, command):
        operator, _ = console(answer)
        assert operator.select_mode() is command

    def test_menu_reprompts_on_unknown(self):
        operator, printed = console("x", " 2 ")
        assert operator.select_mode() is Command.GENERATE_REPORT
        assert any("Unknown option 'x'" in line for line in printed)

    def test_export_targets(self):
        operator, printed = console("a", "B", "2", "nope", "7")
        names = ["First", "Second"]

        assert operator.select_export_target(names) == ExportTarget.all()
        assert operator.select_export_target(names) == ExportTarget.back()
        assert operator.select_export_target(names) == ExportTarget.index(2)
        assert operator.select_export_target(names) == ExportTarget.index(7)
        assert any("2) Second" in line for line in printed)

    def test_confirm(self):
        operator, _ = console("maybe", "Y", "no")
        assert operator.confirm_continue() is True
        assert operator.confirm_continue() is False


class TestConfig:
    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "auth": {
                "mode": "secret",
                "secret": {"tenant_id": "t", "client_id": "c", "client_secret": "s"},
            },
            "analysis": {"empty_exclusions_as_absent": True},
            "output": {"base_dir": "reports"},
            "verbose": True,
        }))

        config = AuditConfig.from_file(path)

        assert config.auth.mode == "secret"
        assert config.auth.secret.client_secret == "s"
        assert config.analysis.empty_exclusions_as_absent is True
        assert config.output.base_dir == "reports"
        assert config.verbose is True

    def test_defaults(self):
        config = AuditConfig()
        assert config.auth.mode == "certificate"
        assert config.analysis.empty_exclusions_as_absent is False
        assert config.output.output_dir.name == "ca_policy_output"


class TestCli:
    def test_ad_hoc_certificate(self, tmp_path):
        args = parse_args([
            "--tenant-id", "t", "--client-id", "c",
            "--cert-path", "cert.txt", "--output-dir", str(tmp_path), "-n",
        ])
        config = build_config(args)

        assert args.non_interactive is True
        assert config.auth.certificate.tenant_id == "t"
        assert config.auth.certificate.certificate_path == "cert.txt"
        assert config.output.base_dir == str(tmp_path)

    def test_delegated_mode(self):
        config = build_config(parse_args(["--auth-mode", "delegated", "--tenant-id", "t", "--client-id", "c"]))
        assert config.auth.delegated.scopes == ["Policy.Read.All"]

    def test_cli_overrides_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "auth": {"certificate": {"tenant_id": "file-t", "client_id": "file-c"}},
        }))
        config = build_config(parse_args(["--config", str(path), "--tenant-id", "cli-t"]))

        assert config.auth.certificate.tenant_id == "cli-t"
        assert config.auth.certificate.client_id == "file-c"

    def test_missing_credentials_exit(self):
        with pytest.raises(SystemExit) as exc:
            build_config(parse_args([]))
        assert exc.value.code == 1

    def test_missing_config_file_exit(self, tmp_path):
        with pytest.raises(SystemExit):
            build_config(parse_args(["--config", str(tmp_path / "absent.json")]))
