"""Tests for checklist_reconcile.validation."""

from checklist_reconcile.reconcile_types import CanonicalNode
from checklist_reconcile.validation import ValidationIssueKind, validate_tree


def _leaf(rid: str, order: int, description: str = "text") -> CanonicalNode:
    return CanonicalNode(
        resolved_id=rid, label=rid, description=description, is_header=False, display_order=order,
    )


def _header(rid: str, order: int, children: list[CanonicalNode]) -> CanonicalNode:
    node = CanonicalNode(
        resolved_id=rid, label="", description="Do the following:", is_header=True,
        display_order=order,
    )
    for child in children:
        child.parent_id = rid
        node.children.append(child)
    return node


def _kinds(report) -> list[str]:  # type: ignore[no-untyped-def]
    return [str(i.kind) for i in report.issues]


class TestValidateTree:
    def test_clean_tree(self) -> None:
        roots = [_leaf("1", 0), _header("header_0_2", 1, [_leaf("2a", 2), _leaf("2b", 3)])]
        report = validate_tree(roots, ["1", "2a", "2b"])
        assert report.ok
        assert report.headers == 1
        assert report.completables == 3
        assert report.max_depth == 1

    def test_missing_description(self) -> None:
        report = validate_tree([_leaf("1", 0, description="  ")])
        assert _kinds(report) == ["missing_description"]
        assert report.issues[0].resolved_id == "1"

    def test_empty_header(self) -> None:
        report = validate_tree([_header("header_0_2", 0, [])])
        assert _kinds(report) == ["empty_header_children"]

    def test_completable_with_children(self) -> None:
        parent = _leaf("2", 0)
        parent.children.append(_leaf("2a", 1))
        report = validate_tree([parent])
        assert ValidationIssueKind.COMPLETABLE_WITH_CHILDREN in {i.kind for i in report.issues}

    def test_duplicate_display_order(self) -> None:
        report = validate_tree([_leaf("1", 0), _leaf("2", 0), _leaf("3", 1)])
        assert _kinds(report) == ["duplicate_display_order"]

    def test_display_order_gap(self) -> None:
        report = validate_tree([_leaf("1", 0), _leaf("2", 2)])
        assert _kinds(report) == ["display_order_gap"]
        assert "1" in report.issues[0].details

    def test_missing_identifier(self) -> None:
        report = validate_tree([_leaf("1", 0)], ["1", "2a", "2a"])
        assert _kinds(report) == ["missing_identifier"]
        assert report.issues[0].resolved_id == "2a"

    def test_as_dict(self) -> None:
        d = validate_tree([_header("header_0_2", 0, [])], ["9"]).as_dict()
        assert d["issue_count"] == 2
        assert d["issues_by_kind"] == {"empty_header_children": 1, "missing_identifier": 1}
        assert d["headers"] == 1

    def test_empty_forest(self) -> None:
        report = validate_tree([])
        assert report.ok
        assert report.max_depth == 0
