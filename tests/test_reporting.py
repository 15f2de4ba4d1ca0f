"""Tests for the report model and the three output adapters."""

import io
import json
from datetime import datetime, timezone

import pytest

from ca_policy_audit.analyzers import RuleEngine, RuleId
from ca_policy_audit.models import Policy
from ca_policy_audit.reporting import (
    EXPORT_KEYS,
    ExportSelection,
    HtmlReportRenderer,
    InvalidSelection,
    RenderFailure,
    TerminalRenderer,
    build_report,
    export_html,
    export_json,
    render_export,
)

from conftest import graph_policy

NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def policies():
    return [
        Policy.from_graph(graph_policy("P1", name="Legacy block", state="disabled")),
        Policy.from_graph(graph_policy(
            "P2", name="MFA for admins", include_applications=["App1"],
            include_users=["user1", "user2"], exclude_users=["admin1"],
            session_controls={"signInFrequency": {"value": 4, "type": "hours", "isEnabled": True}},
        )),
        Policy.from_graph(graph_policy("P3", name="Report only", state="enabledForReportingButNotEnforced",
                                       include_applications=[])),
    ]


@pytest.fixture
def report(policies):
    return build_report(policies, RuleEngine(), now=NOW)


class TestReportModel:
    def test_preserves_fetch_order(self, report, policies):
        assert report.policies == policies
        assert report.generated_at == NOW

    def test_counts(self, report):
        assert [len(e.findings) for e in report] == [3, 0, 1]
        assert report.finding_count == 4
        assert report.clean_count == 1
        assert report.entries[2].findings[0].rule_id is RuleId.NO_BREAK_GLASS_EXCLUSION


class TestTerminalRenderer:
    def test_policy_blocks(self, report):
        out = io.StringIO()
        TerminalRenderer(out).render(report)
        text = out.getvalue()

        assert "Policy Name:     Legacy block" in text
        assert "State:           Disabled" in text
        assert "Created:         2024-03-01 08:30:00 UTC" in text
        assert "Included Users:  user1, user2" in text
        assert "Excluded Users:  admin1" in text
        assert "Report-only" in text
        assert text.index("Legacy block") < text.index("MFA for admins") < text.index("Report only")

    def test_exclusions_omitted_when_not_present(self, report):
        out = io.StringIO()
        TerminalRenderer(out).render(report)
        legacy_block = out.getvalue().split("MFA for admins")[0]
        assert "Excluded Users" not in legacy_block

    def test_defaults_to_stdout(self, report, capsys):
        TerminalRenderer().render(report)
        assert "Legacy block" in capsys.readouterr().out


class TestHtmlReport:
    def test_structure(self, report):
        doc = HtmlReportRenderer().render(report)

        assert doc.startswith("<!DOCTYPE html>")
        assert "Generated 2026-10-17 09:30:00 UTC" in doc
        assert doc.count('<tr class="policy-row') == 3
        assert "<ul></ul>" in doc
        assert "Review the policy scope." in doc

    def test_display_name_escaped(self):
        policy = Policy.from_graph(graph_policy(name="<script>alert(1)</script>"))
        doc = HtmlReportRenderer().render(build_report([policy], RuleEngine(), now=NOW))

        assert "<script>alert(1)</script>" not in doc
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in doc

    def test_finding_text_escaped(self):
        policy = Policy.from_graph(graph_policy(name="Ops & <b>Admins</b>"))
        engine = RuleEngine()
        report = build_report([policy], engine, now=NOW)
        doc = HtmlReportRenderer().render(report)
        assert "Ops &amp; &lt;b&gt;Admins&lt;/b&gt;" in doc

    def test_deterministic(self, report):
        assert HtmlReportRenderer().render(report) == HtmlReportRenderer().render(report)

    def test_export_html_writes_file(self, report, tmp_path):
        path = export_html(report, tmp_path / "out")
        assert path.name == "CA_Policy_Report_20261017_093000.html"
        assert path.read_text(encoding="utf-8") == HtmlReportRenderer().render(report)

    def test_export_html_same_second_keeps_both(self, report, tmp_path):
        first = export_html(report, tmp_path)
        second = export_html(report, tmp_path)

        assert first.name == "CA_Policy_Report_20261017_093000.html"
        assert second.name == "CA_Policy_Report_20261017_093000_2.html"
        assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")

    def test_export_html_write_failure(self, report, tmp_path):
        blocker = tmp_path / "taken"
        blocker.write_text("not a directory")
        with pytest.raises(RenderFailure):
            export_html(report, blocker)


class TestJsonExport:
    def test_round_trip_keeps_contract_keys(self, policies):
        doc = json.loads(render_export(policies, ExportSelection.all()))

        assert len(doc) == 3
        for item, policy in zip(doc, policies):
            assert tuple(item.keys()) == EXPORT_KEYS
            assert item["displayName"] == policy.display_name
            assert item["state"] == policy.state.value

    def test_nested_structures_unmodified(self, policies):
        doc = json.loads(render_export(policies, ExportSelection.all()))
        assert doc[1]["conditions"] == policies[1].raw["conditions"]
        assert doc[1]["sessionControls"]["signInFrequency"]["value"] == 4
        assert doc[0]["sessionControls"] is None
        assert "id" not in doc[0] and "createdDateTime" not in doc[0]

    def test_single_selection(self, policies):
        doc = json.loads(render_export(policies, ExportSelection.single(1)))
        assert [d["displayName"] for d in doc] == ["MFA for admins"]

    @pytest.mark.parametrize("index", [3, 4, -1])
    def test_out_of_range_selection(self, policies, index):
        with pytest.raises(InvalidSelection):
            render_export(policies, ExportSelection.single(index))

    def test_empty_policy_list_selection(self):
        with pytest.raises(InvalidSelection, match="No policies are available"):
            render_export([], ExportSelection.single(0))

    def test_export_same_second_keeps_both(self, policies, tmp_path):
        first = export_json(policies, ExportSelection.all(), tmp_path, now=NOW)
        second = export_json(policies, ExportSelection.single(0), tmp_path, now=NOW)
        third = export_json(policies, ExportSelection.all(), tmp_path, now=NOW)

        assert third.name == "CA_Policies_Export_20261017_093000_2.json"
        assert len({first, second, third}) == 3
        assert len(json.loads(first.read_text(encoding="utf-8"))) == 3
        assert len(json.loads(third.read_text(encoding="utf-8"))) == 3

    def test_unserializable_policy(self):
        item = graph_policy()
        item["grantControls"] = {"operator": object()}
        with pytest.raises(RenderFailure):
            render_export([Policy.from_graph(item)], ExportSelection.all())

    def test_export_all_file(self, policies, tmp_path):
        path = export_json(policies, ExportSelection.all(), tmp_path, now=NOW)
        assert path.name == "CA_Policies_Export_20261017_093000.json"
        assert len(json.loads(path.read_text(encoding="utf-8"))) == 3

    def test_export_single_file_name(self, policies, tmp_path):
        path = export_json(policies, ExportSelection.single(1), tmp_path, now=NOW)
        assert path.name == "CA_Policy_MFA_for_admins_20261017_093000.json"

    def test_invalid_selection_writes_nothing(self, policies, tmp_path):
        with pytest.raises(InvalidSelection):
            export_json(policies, ExportSelection.single(7), tmp_path, now=NOW)
        assert list(tmp_path.iterdir()) == []
