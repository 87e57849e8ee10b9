"""Discrepancy reporting for reconciliation runs.

Discrepancies are advisory records for a human reviewer or a retry job;
nothing here raises. Each authoritative identifier that no assignment
claimed gets exactly one ``csv_not_in_ui`` entry. Per-format counts of the
unclaimed identifiers are a triage side channel and feed no downstream
logic.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from checklist_reconcile.id_grammar import parse_id
from checklist_reconcile.reconcile_types import (
    DiscrepancyEntry,
    DiscrepancyKind,
    MatchAssignment,
    VersionKey,
    VisualNode,
)

_ACTION_CSV_NOT_IN_UI = (
    "Verify the checklist was fully expanded during scrape, or check for an "
    "identifier format the grammar does not cover"
)
_ACTION_UI_NOT_MATCHED = "Check whether this checkbox item is missing from the identifier export"
_ACTION_NOT_ACCESSIBLE = "Run the scraper on this checklist version"
_ACTION_VERSION_MISMATCH = "Confirm the version label or export the identifiers for this version"
_ACTION_AMBIGUOUS = "Review the tied candidates; the earliest position was kept"


def report_discrepancies(
    claimed_ids: Iterable[str],
    all_ids: Sequence[str],
    unmatched_nodes: Iterable[tuple[int, VisualNode]] = (),
    *,
    checklist: str = "",
    version: VersionKey | None = None,
) -> list[DiscrepancyEntry]:
    """Entries for unclaimed identifiers and for the given unmatched nodes.

    Args:
        claimed_ids: Identifiers owned by a committed assignment.
        all_ids: Full authoritative list; repeats are reported once.
        unmatched_nodes: ``(position, node)`` pairs the caller considers
            discrepant (typically unclaimed nodes that carry a checkbox).
        checklist: Checklist name stamped on each entry.
        version: Checklist version stamped on each entry.
    """
    claimed = set(claimed_ids)
    entries: list[DiscrepancyEntry] = []

    for identifier in dict.fromkeys(all_ids):
        if identifier in claimed:
            continue
        parsed = parse_id(identifier)
        entries.append(DiscrepancyEntry(
            kind=DiscrepancyKind.CSV_NOT_IN_UI,
            checklist=checklist,
            version=version,
            identifier=identifier,
            explanation=(
                f'Identifier "{identifier}" ({parsed.format}) was not matched '
                f"to any visual node"
            ),
            suggested_action=_ACTION_CSV_NOT_IN_UI,
        ))

    for position, node in unmatched_nodes:
        label = node.display_label or ""
        entries.append(DiscrepancyEntry(
            kind=DiscrepancyKind.UI_NOT_MATCHED,
            checklist=checklist,
            version=version,
            label=label,
            explanation=(
                f'Visual node {position} (label "{label}") has a checkbox but '
                f"no authoritative identifier"
            ),
            suggested_action=_ACTION_UI_NOT_MATCHED,
        ))

    return entries


def ambiguous_match_entries(
    assignments: Iterable[MatchAssignment],
    *,
    checklist: str = "",
    version: VersionKey | None = None,
) -> list[DiscrepancyEntry]:
    """One advisory entry per committed assignment that had tied candidates."""
    entries: list[DiscrepancyEntry] = []
    for a in assignments:
        if not a.is_ambiguous:
            continue
        tied = ", ".join(str(p) for p in a.tied_positions)
        entries.append(DiscrepancyEntry(
            kind=DiscrepancyKind.AMBIGUOUS_MATCH,
            checklist=checklist,
            version=version,
            identifier=a.identifier,
            explanation=(
                f'Identifier "{a.identifier}" tied at confidence {a.confidence}; '
                f"kept position {a.position} over {tied}"
            ),
            suggested_action=_ACTION_AMBIGUOUS,
        ))
    return entries


def not_accessible_entry(checklist: str, version: VersionKey) -> DiscrepancyEntry:
    return DiscrepancyEntry(
        kind=DiscrepancyKind.BADGE_NOT_ACCESSIBLE,
        checklist=checklist,
        version=version,
        explanation=f"No scraped visual data found for {checklist} version {version}",
        suggested_action=_ACTION_NOT_ACCESSIBLE,
    )


def version_mismatch_entry(checklist: str, version: VersionKey) -> DiscrepancyEntry:
    return DiscrepancyEntry(
        kind=DiscrepancyKind.VERSION_MISMATCH,
        checklist=checklist,
        version=version,
        explanation=(
            f"Scraped version {version} of {checklist} has no authoritative "
            f"identifier list"
        ),
        suggested_action=_ACTION_VERSION_MISMATCH,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def count_by_kind(entries: Iterable[DiscrepancyEntry]) -> dict[str, int]:
    counts = Counter(str(e.kind) for e in entries)
    return dict(sorted(counts.items()))


def count_by_format(identifiers: Iterable[str]) -> dict[str, int]:
    """Identifier counts per grammar format, most common first."""
    counts = Counter(str(parse_id(i).format) for i in identifiers)
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))


def examples_by_format(
    identifiers: Iterable[str],
    *,
    limit: int = 5,
) -> dict[str, list[str]]:
    """Up to *limit* distinct example identifiers per format."""
    examples: dict[str, list[str]] = {}
    for identifier in dict.fromkeys(identifiers):
        bucket = examples.setdefault(str(parse_id(identifier).format), [])
        if len(bucket) < limit:
            bucket.append(identifier)
    return dict(sorted(examples.items()))


@dataclass(slots=True)
class DiscrepancyReport:
    """Flat entry list plus the aggregated views written to disk."""

    entries: list[DiscrepancyEntry] = field(default_factory=list)

    def extend(self, entries: Iterable[DiscrepancyEntry]) -> None:
        self.entries.extend(entries)

    @property
    def by_kind(self) -> dict[str, int]:
        return count_by_kind(self.entries)

    def unmatched_identifiers(self) -> list[str]:
        return [
            e.identifier for e in self.entries
            if e.kind is DiscrepancyKind.CSV_NOT_IN_UI and e.identifier is not None
        ]

    def as_document(self, *, generated_at: str | None = None) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "total_discrepancies": len(self.entries),
            "by_kind": self.by_kind,
            "by_format": count_by_format(self.unmatched_identifiers()),
            "discrepancies": [e.as_dict() for e in self.entries],
        }
        if generated_at is not None:
            doc["generated_at"] = generated_at
        return doc
