"""Advisory checks over a reconstructed canonical tree.

Nothing here raises or mutates the tree; issues are collected for the
discrepancy report and the run summary.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from checklist_reconcile.hierarchy import iter_preorder, tree_depth
from checklist_reconcile.reconcile_types import CanonicalNode


class ValidationIssueKind(StrEnum):
    MISSING_DESCRIPTION = "missing_description"
    EMPTY_HEADER_CHILDREN = "empty_header_children"
    COMPLETABLE_WITH_CHILDREN = "completable_with_children"
    DUPLICATE_DISPLAY_ORDER = "duplicate_display_order"
    DISPLAY_ORDER_GAP = "display_order_gap"
    MISSING_IDENTIFIER = "missing_identifier"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    kind: ValidationIssueKind
    details: str
    resolved_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "resolved_id": self.resolved_id,
            "details": self.details,
        }


@dataclass(slots=True)
class ValidationReport:
    issues: list[ValidationIssue] = field(default_factory=list[ValidationIssue])
    headers: int = 0
    completables: int = 0
    max_depth: int = 0

    @property
    def ok(self) -> bool:
        return not self.issues

    def by_kind(self) -> dict[str, int]:
        return dict(sorted(Counter(str(i.kind) for i in self.issues).items()))

    def as_dict(self) -> dict[str, Any]:
        return {
            "headers": self.headers,
            "completables": self.completables,
            "max_depth": self.max_depth,
            "issue_count": len(self.issues),
            "issues_by_kind": self.by_kind(),
            "issues": [i.as_dict() for i in self.issues],
        }


def validate_tree(
    roots: Sequence[CanonicalNode],
    identifiers: Iterable[str] = (),
) -> ValidationReport:
    """Check a canonical forest for structural problems.

    Args:
        roots: Output of the hierarchy builder for one version.
        identifiers: Authoritative identifiers that should each appear as
            a resolved id somewhere in the tree.
    """
    report = ValidationReport(max_depth=tree_depth(roots))
    seen_ids: set[str] = set()
    orders: list[int] = []

    for node in iter_preorder(roots):
        seen_ids.add(node.resolved_id)
        orders.append(node.display_order)

        if not node.description.strip():
            report.issues.append(ValidationIssue(
                kind=ValidationIssueKind.MISSING_DESCRIPTION,
                resolved_id=node.resolved_id,
                details=f"Node {node.label or '(unlabeled)'} ({node.resolved_id}) has no description",
            ))

        if node.is_header:
            report.headers += 1
            if not node.children:
                report.issues.append(ValidationIssue(
                    kind=ValidationIssueKind.EMPTY_HEADER_CHILDREN,
                    resolved_id=node.resolved_id,
                    details=f"Header {node.label or '(unlabeled)'} ({node.resolved_id}) has no children",
                ))
        else:
            report.completables += 1
            if node.children:
                report.issues.append(ValidationIssue(
                    kind=ValidationIssueKind.COMPLETABLE_WITH_CHILDREN,
                    resolved_id=node.resolved_id,
                    details=(
                        f"Completable {node.resolved_id} has {len(node.children)} children"
                    ),
                ))

    counts = Counter(orders)
    for order in sorted(o for o, n in counts.items() if n > 1):
        report.issues.append(ValidationIssue(
            kind=ValidationIssueKind.DUPLICATE_DISPLAY_ORDER,
            details=f"display_order {order} is used by {counts[order]} nodes",
        ))

    if counts:
        missing = sorted(set(range(max(counts) + 1)) - set(counts))
        if missing:
            report.issues.append(ValidationIssue(
                kind=ValidationIssueKind.DISPLAY_ORDER_GAP,
                details=f"display_order skips {', '.join(str(m) for m in missing)}",
            ))

    for identifier in dict.fromkeys(identifiers):
        if identifier not in seen_ids:
            report.issues.append(ValidationIssue(
                kind=ValidationIssueKind.MISSING_IDENTIFIER,
                resolved_id=identifier,
                details=f"Identifier {identifier} does not appear in the tree",
            ))

    return report
