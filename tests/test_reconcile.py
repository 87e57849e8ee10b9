"""Tests for checklist_reconcile.reconcile (end-to-end reconciliation)."""

import logging
from typing import Any

import pytest

from checklist_reconcile.config import ReconcileConfig
from checklist_reconcile.hierarchy import completable_ids, find_node, iter_preorder
from checklist_reconcile.io_utils import dumps_canonical
from checklist_reconcile.reconcile import (
    identifier_only_version,
    reconcile_documents,
    reconcile_version,
    resolve_nodes,
    run_reconciliation,
    slugify,
)
from checklist_reconcile.reconcile_types import MatchAssignment, VisualNode


def _node(label: str | None, description: str, *, checkbox: bool = True,
          parent: str | None = None, raw_html: str = "") -> VisualNode:
    return VisualNode(
        display_label=label, description=description, has_checkbox=checkbox,
        parent_hint=parent, raw_html=raw_html,
    )


NODES = [
    _node("1", "Explain safety"),
    _node("2", "Do the following:", checkbox=False),
    _node("(a)", "Part a"),
    _node("(b)", "Do ONE of the following:", checkbox=False),
    _node("(1)", "First"),
    _node("(2)", "Second"),
    _node("3", "Do the following:", checkbox=False),
    _node(None, "Option A—Sprinting", checkbox=False),
    _node("(1)", "Run 100 meters"),
    _node(None, "Option B—Distance", checkbox=False),
    _node("(1)", "Run a mile"),
    _node("(c)", "Unlisted extra step"),
]

IDENTIFIERS = ["1", "2a", "2b[1]", "2b[2]", "3 Option A(1)", "3 Option B(1)", "9z", "2a"]


def _scrape_doc() -> dict[str, Any]:
    return {"badges": [
        {
            "badgeName": "Athletics",
            "versionYear": 2025,
            "scrapedAt": "2025-06-01T00:00:00Z",
            "requirements": [
                {
                    "displayLabel": n.display_label,
                    "description": n.description,
                    "hasCheckbox": n.has_checkbox,
                    "links": [{"url": "https://example.org/1", "text": "ref"}] if i == 0 else [],
                }
                for i, n in enumerate(NODES)
            ],
        },
        {"badgeName": "Athletics", "versionYear": 2019, "requirements": []},
    ]}


def _ids_doc() -> dict[str, Any]:
    return {"badges": [
        {"badgeName": "athletics", "versionYear": 2025, "requirementIds": IDENTIFIERS},
        {"badgeName": "Archery", "versionYear": "2024", "requirementIds": ["1", "2", "2"]},
    ]}


class TestResolveNodes:
    def test_claimed_nodes_are_completable(self) -> None:
        nodes = [_node("2", "x", checkbox=False), _node("(a)", "y")]
        resolved = resolve_nodes(nodes, [MatchAssignment("2a", 1, 100, "direct_label")])
        assert [(r.resolved_id, r.is_header) for r in resolved] == [
            ("header_0_2", True), ("2a", False),
        ]

    def test_header_id_uses_parent_hint_and_position(self) -> None:
        nodes = [_node(None, "Option A", checkbox=False, parent="5")]
        [resolved] = resolve_nodes(nodes, [], header_id_prefix="hdr")
        assert resolved.resolved_id == "hdr_5_0"
        assert resolved.label == ""

    def test_duplicate_header_ids_suffixed(self) -> None:
        nodes = [_node("(b)", "x", checkbox=False)] * 3
        ids = [r.resolved_id for r in resolve_nodes(nodes, [])]
        assert ids == ["header_0_(b)", "header_0_(b)_dup2", "header_0_(b)_dup3"]

    def test_header_never_collides_with_identifier(self) -> None:
        nodes = [_node("x", "a", checkbox=False), _node("(1)", "b")]
        resolved = resolve_nodes(nodes, [MatchAssignment("header_0_x", 1, 90, "other")])
        assert resolved[0].resolved_id == "header_0_x_dup2"


class TestReconcileVersion:
    def test_assignments(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        by_id = {a.identifier: a.position for a in result.assignments}
        assert by_id == {
            "1": 0, "2a": 2, "2b[1]": 4, "2b[2]": 5, "3 Option A(1)": 8, "3 Option B(1)": 10,
        }
        assert result.matched == 6
        assert result.unmatched == 1

    def test_tree_shape(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        roots = result.roots
        assert [r.resolved_id for r in roots] == ["1", "header_0_2", "header_0_3"]
        option_a = find_node(roots, "3 Option A(1)")
        assert option_a is not None
        assert option_a.parent_id == "header_0_7"
        assert find_node(roots, "header_0_7").parent_id == "header_0_3"  # type: ignore[union-attr]

    def test_unclaimed_checkbox_node_becomes_header(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        extra = find_node(result.roots, "header_0_(c)")
        assert extra is not None
        assert extra.is_header
        assert extra.parent_id == "header_0_9"

    def test_wrapped_number_under_checkbox_letter(self) -> None:
        nodes = [
            _node("1", "Explain"),
            _node("2", "Do the following:", checkbox=False),
            _node("(a)", "Cook"),
            _node("(1)", "Breakfast"),
            _node("(2)", "Lunch"),
            _node("(3)", "Dinner"),
            _node("3", "Clean up"),
        ]
        ids = ["1", "2a", "2a1", "2a2", "2a3", "3"]
        result = reconcile_version("Cooking", 2025, ids, nodes)
        by_id = {a.identifier: a.position for a in result.assignments}
        assert by_id == {"1": 0, "2a": 2, "2a1": 3, "2a2": 4, "2a3": 5, "3": 6}
        assert result.discrepancies == []
        assert completable_ids(result.roots) == ids

    def test_discrepancies(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        kinds = [(str(d.kind), d.identifier, d.label) for d in result.discrepancies]
        assert kinds == [
            ("csv_not_in_ui", "9z", None),
            ("ui_not_matched", None, "(c)"),
        ]

    def test_unmatched_checkbox_nodes_can_be_silenced(self) -> None:
        cfg = ReconcileConfig(report_unmatched_checkbox_nodes=False)
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES, cfg)
        assert [str(d.kind) for d in result.discrepancies] == ["csv_not_in_ui"]

    def test_search_alone_finds_the_same_nodes(self) -> None:
        cfg = ReconcileConfig(direct_label_pass=False)
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES, cfg)
        by_id = {a.identifier: a.position for a in result.assignments}
        assert by_id["2b[1]"] == 4
        assert by_id["3 Option B(1)"] == 10
        assert all(a.match_type != "direct_label" for a in result.assignments)

    def test_ambiguous_reporting_opt_in(self) -> None:
        nodes = [_node("2", "x", checkbox=False), _node("(a)", "y"), _node("(a)", "z")]
        quiet = reconcile_version("X", 1, ["2a"], nodes, ReconcileConfig(direct_label_pass=False))
        loud = reconcile_version(
            "X", 1, ["2a"], nodes,
            ReconcileConfig(direct_label_pass=False, report_ambiguous=True),
        )
        assert "ambiguous_match" not in {str(d.kind) for d in quiet.discrepancies}
        assert "ambiguous_match" in {str(d.kind) for d in loud.discrepancies}

    def test_description_recovered_before_context(self) -> None:
        nodes = [
            _node("3", "Do one:", checkbox=False),
            _node(None, "", checkbox=False, raw_html="<div><b>Option A</b>—Sprinting</div>"),
            _node("(1)", "Run"),
        ]
        result = reconcile_version("X", 1, ["3 Option A(1)"], nodes)
        assert result.matched == 1
        header = find_node(result.roots, "header_0_1")
        assert header is not None
        assert header.description.startswith("Option A")

    def test_without_recovery_option_is_missed(self) -> None:
        nodes = [
            _node("3", "Do one:", checkbox=False),
            _node(None, "", checkbox=False, raw_html="<div>Option A—Sprinting</div>"),
            _node("(1)", "Run"),
        ]
        cfg = ReconcileConfig(recover_descriptions_from_html=False)
        result = reconcile_version("X", 1, ["3 Option A(1)"], nodes, cfg)
        assert result.matched == 0

    def test_leaf_order_preserved(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        claimed = {a.position for a in result.assignments}
        resolved = resolve_nodes(NODES, result.assignments)
        expected = [r.resolved_id for r in resolved if r.position in claimed]
        assert completable_ids(result.roots) == expected

    def test_display_order_is_input_position(self) -> None:
        result = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        orders = [n.display_order for n in iter_preorder(result.roots)]
        assert orders == list(range(len(NODES)))

    def test_counts(self) -> None:
        counts = reconcile_version("Athletics", 2025, IDENTIFIERS, NODES).counts()
        assert counts == {
            "nodes": 12, "headers": 6, "completables": 6, "matched": 6, "unmatched": 1,
        }

    def test_empty_inputs(self) -> None:
        result = reconcile_version("X", 1, [], [])
        assert result.roots == []
        assert result.discrepancies == []

    def test_logging(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="checklist_reconcile.reconcile"):
            reconcile_version("Athletics", 2025, IDENTIFIERS, NODES)
        assert "6/7 identifiers matched" in caplog.text
        assert "2b[1] -> node 4" in caplog.text


class TestIdentifierOnlyVersion:
    def test_flat_completables(self) -> None:
        result = identifier_only_version("Archery", 2024, ["1", "2", "2"])
        assert [r.resolved_id for r in result.roots] == ["1", "2"]
        assert all(not r.is_header and r.description == "" for r in result.roots)
        assert [str(d.kind) for d in result.discrepancies] == ["badge_not_accessible"]
        assert result.scraped is False


class TestReconcileDocuments:
    def test_canonical_document(self) -> None:
        canonical, _report = reconcile_documents(_ids_doc(), _scrape_doc())
        assert canonical["source"] == "checklist_reconcile"
        assert "generated_at" not in canonical
        names = [c["name"] for c in canonical["checklists"]]
        assert names == ["Archery", "athletics"]
        athletics = canonical["checklists"][1]
        assert athletics["code"] == "athletics"
        [version] = athletics["versions"]
        assert version["version"] == 2025
        assert version["scraped"] is True
        assert version["nodes"][0]["links"] == [{"url": "https://example.org/1", "text": "ref"}]

    def test_discrepancy_document(self) -> None:
        _canonical, report = reconcile_documents(_ids_doc(), _scrape_doc())
        assert report["by_kind"] == {
            "badge_not_accessible": 1,
            "csv_not_in_ui": 1,
            "ui_not_matched": 1,
            "version_mismatch": 1,
        }
        assert report["total_discrepancies"] == 4
        mismatch = [d for d in report["discrepancies"] if d["kind"] == "version_mismatch"]
        assert mismatch[0]["version"] == 2019
        assert {v["checklist"] for v in report["validation"]} == {"athletics", "Archery"}

    def test_unscraped_ids_not_reported_individually(self) -> None:
        _canonical, report = reconcile_documents(_ids_doc(), _scrape_doc())
        archery = [d for d in report["discrepancies"] if d["checklist"] == "Archery"]
        assert [d["kind"] for d in archery] == ["badge_not_accessible"]

    def test_every_identifier_accounted_once(self) -> None:
        run = run_reconciliation(_ids_doc(), _scrape_doc())
        for result in run.results:
            if not result.scraped:
                continue
            claimed = [a.identifier for a in result.assignments]
            reported = [
                d.identifier for d in result.discrepancies if str(d.kind) == "csv_not_in_ui"
            ]
            assert len(claimed) == len(set(claimed))
            assert set(claimed).isdisjoint(reported)
            assert sorted(claimed + reported) == sorted(set(result.identifiers))

    def test_idempotent_bytes(self) -> None:
        first = reconcile_documents(_ids_doc(), _scrape_doc())
        second = reconcile_documents(_ids_doc(), _scrape_doc())
        assert dumps_canonical(first[0]) == dumps_canonical(second[0])
        assert dumps_canonical(first[1]) == dumps_canonical(second[1])

    def test_generated_at_passthrough(self) -> None:
        canonical, report = reconcile_documents(
            _ids_doc(), _scrape_doc(), generated_at="2026-01-01T00:00:00+00:00",
        )
        assert canonical["generated_at"] == report["generated_at"]

    def test_no_scrape(self) -> None:
        run = run_reconciliation(_ids_doc(), None)
        assert all(not r.scraped for r in run.results)
        assert run.report.by_kind == {"badge_not_accessible": 2}

    def test_summary(self) -> None:
        summary = run_reconciliation(_ids_doc(), _scrape_doc()).summary()
        assert summary["checklists"] == 2
        assert summary["versions"] == 2
        assert summary["unscraped_versions"] == 1
        assert summary["matched"] == 6
        assert summary["total_discrepancies"] == 4

    def test_versions_newest_first(self) -> None:
        ids = {"checklists": [
            {"name": "Cooking", "version": 2019, "identifiers": ["1"]},
            {"name": "Cooking", "version": 2025, "identifiers": ["1"]},
        ]}
        canonical, _report = reconcile_documents(ids, {"checklists": []})
        assert [v["version"] for v in canonical["checklists"][0]["versions"]] == [2025, 2019]

    def test_duplicate_identifier_rows_keep_first(self, caplog: pytest.LogCaptureFixture) -> None:
        ids = {"checklists": [
            {"name": "Cooking", "version": 2025, "identifiers": ["1"]},
            {"name": "cooking", "version": 2025, "identifiers": ["1", "2"]},
        ]}
        with caplog.at_level(logging.WARNING, logger="checklist_reconcile.reconcile"):
            run = run_reconciliation(ids, None)
        assert len(run.results) == 1
        assert run.results[0].identifiers == ("1",)
        assert "duplicate identifier-list row skipped" in caplog.text

    def test_duplicate_scrape_rows_keep_first(self, caplog: pytest.LogCaptureFixture) -> None:
        ids = {"checklists": [{"name": "Cooking", "version": 2025, "identifiers": ["1"]}]}
        scrape = {"checklists": [
            {"name": "Cooking", "version": 2025, "nodes": [
                {"display_label": "1", "description": "Explain", "has_checkbox": True},
            ]},
            {"name": "Cooking", "version": 2025, "nodes": []},
        ]}
        with caplog.at_level(logging.WARNING, logger="checklist_reconcile.reconcile"):
            run = run_reconciliation(ids, scrape)
        [result] = run.results
        assert result.matched == 1
        assert run.report.entries == []
        assert "duplicate scrape row skipped" in caplog.text

    def test_invalid_document(self) -> None:
        with pytest.raises(ValueError):
            reconcile_documents([], {})


class TestSlugify:
    def test_slugify(self) -> None:
        assert slugify("Citizenship in the World") == "citizenship_in_the_world"
        assert slugify("  Fish & Wildlife Management ") == "fish_wildlife_management"
