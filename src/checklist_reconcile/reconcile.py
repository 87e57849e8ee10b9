"""Per-version and per-document reconciliation.

Pipeline for one checklist version:
  1. Recover empty descriptions from raw HTML (optional).
  2. Precompute the addressing context at every position.
  3. Direct label pass (optional), then greedy assignment search over the
     identifiers the direct pass left unclaimed.
  4. Tag nodes: a claimed node is completable, everything else a header
     with a synthesized id.
  5. Build the tree, report discrepancies, validate.

Document-level reconciliation pairs authoritative versions with scraped
versions by case-insensitive name and version, and emits the canonical
document plus the discrepancy document. Neither contains a wall-clock
timestamp unless one is passed in.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from checklist_reconcile.config import DEFAULT_CONFIG, ReconcileConfig
from checklist_reconcile.context import compute_contexts
from checklist_reconcile.discrepancy import (
    DiscrepancyReport,
    ambiguous_match_entries,
    not_accessible_entry,
    report_discrepancies,
    version_mismatch_entry,
)
from checklist_reconcile.hierarchy import build_tree, count_nodes
from checklist_reconcile.html_utils import recover_description
from checklist_reconcile.matcher import assign_identifiers, run_direct_label_pass
from checklist_reconcile.reconcile_types import (
    CanonicalNode,
    DiscrepancyEntry,
    MatchAssignment,
    ResolvedNode,
    ScrapedVersion,
    VersionKey,
    VisualNode,
    authoritative_versions_from_doc,
    scrape_versions_from_doc,
    version_sort_key,
)
from checklist_reconcile.validation import ValidationReport, validate_tree

logger = logging.getLogger(__name__)

SOURCE_NAME = "checklist_reconcile"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """``"Citizenship in the World"`` -> ``"citizenship_in_the_world"``."""
    return _SLUG_RE.sub("_", name.lower()).strip("_")


# ---------------------------------------------------------------------------
# Node resolution
# ---------------------------------------------------------------------------

def _unique_id(base: str, used: set[str]) -> str:
    if base not in used:
        return base
    n = 2
    while f"{base}_dup{n}" in used:
        n += 1
    return f"{base}_dup{n}"


def resolve_nodes(
    nodes: Sequence[VisualNode],
    assignments: Iterable[MatchAssignment],
    *,
    header_id_prefix: str = DEFAULT_CONFIG.header_id_prefix,
) -> list[ResolvedNode]:
    """Tag every node completable (claimed) or header, in input order.

    Completables take their authoritative identifier. Headers get
    ``{prefix}_{parent_hint or 0}_{label or position}``, suffixed
    ``_dup2``, ``_dup3``... when that id is already taken in this version.
    """
    by_position = {a.position: a.identifier for a in assignments}
    used: set[str] = set(by_position.values())
    resolved: list[ResolvedNode] = []

    for position, node in enumerate(nodes):
        identifier = by_position.get(position)
        if identifier is not None:
            resolved_id = identifier
        else:
            base = f"{header_id_prefix}_{node.parent_hint or '0'}_{node.display_label or position}"
            resolved_id = _unique_id(base, used)
            used.add(resolved_id)
        resolved.append(ResolvedNode(
            position=position,
            resolved_id=resolved_id,
            label=node.display_label or "",
            description=node.description,
            is_header=identifier is None,
            has_checkbox=node.has_checkbox,
            links=node.links,
        ))
    return resolved


# ---------------------------------------------------------------------------
# Version reconciliation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class VersionResult:
    """Everything produced for one checklist version."""

    name: str
    version: VersionKey
    roots: list[CanonicalNode]
    identifiers: tuple[str, ...]
    assignments: list[MatchAssignment] = field(default_factory=list[MatchAssignment])
    discrepancies: list[DiscrepancyEntry] = field(default_factory=list[DiscrepancyEntry])
    validation: ValidationReport = field(default_factory=ValidationReport)
    node_count: int = 0
    scraped: bool = True

    @property
    def matched(self) -> int:
        return len(self.assignments)

    @property
    def unmatched(self) -> int:
        claimed = {a.identifier for a in self.assignments}
        return sum(1 for i in self.identifiers if i not in claimed)

    def counts(self) -> dict[str, int]:
        return {
            "nodes": self.node_count,
            "headers": self.validation.headers,
            "completables": self.validation.completables,
            "matched": self.matched,
            "unmatched": self.unmatched,
        }

    def as_record(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "scraped": self.scraped,
            "stats": self.counts(),
            "nodes": [root.as_record() for root in self.roots],
        }


def reconcile_version(
    name: str,
    version: VersionKey,
    identifiers: Sequence[str],
    nodes: Sequence[VisualNode],
    config: ReconcileConfig | None = None,
) -> VersionResult:
    """Reconcile one authoritative identifier list with one scraped sequence."""
    config = config or DEFAULT_CONFIG
    distinct = tuple(dict.fromkeys(identifiers))

    if config.recover_descriptions_from_html:
        nodes = tuple(recover_description(n) for n in nodes)
    contexts = compute_contexts(nodes)

    assignments: list[MatchAssignment] = []
    if config.direct_label_pass:
        assignments = run_direct_label_pass(distinct, nodes, contexts=contexts)
    direct_ids = {a.identifier for a in assignments}

    outcome = assign_identifiers(
        (i for i in distinct if i not in direct_ids),
        nodes,
        contexts=contexts,
        claimed_positions={a.position for a in assignments},
    )
    assignments.extend(outcome.assignments)
    for a in assignments:
        logger.debug(
            "%s %s: %s -> node %d (%s, confidence %d)",
            name, version, a.identifier, a.position, a.match_type, a.confidence,
        )

    resolved = resolve_nodes(nodes, assignments, header_id_prefix=config.header_id_prefix)
    roots = build_tree(resolved)

    claimed_positions = {a.position for a in assignments}
    unmatched_nodes: list[tuple[int, VisualNode]] = []
    if config.report_unmatched_checkbox_nodes:
        unmatched_nodes = [
            (p, n) for p, n in enumerate(nodes)
            if n.has_checkbox and p not in claimed_positions
        ]
    discrepancies = report_discrepancies(
        (a.identifier for a in assignments),
        distinct,
        unmatched_nodes,
        checklist=name,
        version=version,
    )
    if config.report_ambiguous:
        discrepancies.extend(
            ambiguous_match_entries(assignments, checklist=name, version=version)
        )

    result = VersionResult(
        name=name,
        version=version,
        roots=roots,
        identifiers=distinct,
        assignments=assignments,
        discrepancies=discrepancies,
        validation=validate_tree(roots, distinct),
        node_count=count_nodes(roots),
    )
    logger.info(
        "%s %s: %d nodes, %d/%d identifiers matched (%d direct), %d discrepancies",
        name, version, result.node_count, result.matched, len(distinct),
        len(direct_ids), len(discrepancies),
    )
    return result


def identifier_only_version(
    name: str,
    version: VersionKey,
    identifiers: Sequence[str],
) -> VersionResult:
    """Flat version for a checklist that was never scraped.

    Every identifier becomes a root completable with an empty description.
    The single ``badge_not_accessible`` entry stands in for per-identifier
    reporting.
    """
    distinct = tuple(dict.fromkeys(identifiers))
    roots = [
        CanonicalNode(
            resolved_id=identifier,
            label=identifier,
            description="",
            is_header=False,
            display_order=order,
        )
        for order, identifier in enumerate(distinct)
    ]
    logger.warning("%s %s: no scraped data, emitting %d flat identifiers", name, version, len(distinct))
    return VersionResult(
        name=name,
        version=version,
        roots=roots,
        identifiers=distinct,
        discrepancies=[not_accessible_entry(name, version)],
        validation=validate_tree(roots, distinct),
        node_count=len(roots),
        scraped=False,
    )


# ---------------------------------------------------------------------------
# Document reconciliation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ReconcileRun:
    """Results of reconciling one authoritative document with one scrape."""

    results: list[VersionResult] = field(default_factory=list[VersionResult])
    report: DiscrepancyReport = field(default_factory=DiscrepancyReport)

    def canonical_document(self, *, generated_at: str | None = None) -> dict[str, Any]:
        grouped: dict[str, list[VersionResult]] = {}
        for result in self.results:
            grouped.setdefault(result.name.lower(), []).append(result)

        checklists: list[dict[str, Any]] = []
        for results in grouped.values():
            name = results[0].name
            ordered = sorted(results, key=lambda r: version_sort_key(r.version))
            checklists.append({
                "code": slugify(name),
                "name": name,
                "versions": [r.as_record() for r in ordered],
            })
        checklists.sort(key=lambda c: (c["name"].lower(), c["name"]))

        doc: dict[str, Any] = {"source": SOURCE_NAME, "checklists": checklists}
        if generated_at is not None:
            doc["generated_at"] = generated_at
        return doc

    def discrepancy_document(self, *, generated_at: str | None = None) -> dict[str, Any]:
        doc = self.report.as_document(generated_at=generated_at)
        doc["validation"] = [
            {"checklist": r.name, "version": r.version, **r.validation.as_dict()}
            for r in self.results
        ]
        return doc

    def summary(self) -> dict[str, Any]:
        return {
            "checklists": len({r.name.lower() for r in self.results}),
            "versions": len(self.results),
            "unscraped_versions": sum(1 for r in self.results if not r.scraped),
            "nodes": sum(r.node_count for r in self.results),
            "matched": sum(r.matched for r in self.results),
            "unmatched": sum(r.unmatched for r in self.results if r.scraped),
            "total_discrepancies": len(self.report.entries),
            "by_kind": self.report.by_kind,
        }


def run_reconciliation(
    authoritative_doc: Any,
    scrape_doc: Any,
    config: ReconcileConfig | None = None,
) -> ReconcileRun:
    """Reconcile every authoritative version against the scrape.

    *scrape_doc* may be None, in which case every version is emitted flat.
    Raises ValueError if either document is not a JSON object.
    """
    config = config or DEFAULT_CONFIG
    authoritative = authoritative_versions_from_doc(authoritative_doc)
    scraped = scrape_versions_from_doc(scrape_doc) if scrape_doc is not None else []

    # First row wins for a repeated (name, version) key in either document
    scraped_by_key: dict[tuple[str, VersionKey], ScrapedVersion] = {}
    for s in scraped:
        key = (s.name.lower(), s.version)
        if key in scraped_by_key:
            logger.warning("%s %s: duplicate scrape row skipped", s.name, s.version)
            continue
        scraped_by_key[key] = s

    run = ReconcileRun()
    seen_keys: set[tuple[str, VersionKey]] = set()

    for auth in authoritative:
        key = (auth.name.lower(), auth.version)
        if key in seen_keys:
            logger.warning("%s %s: duplicate identifier-list row skipped", auth.name, auth.version)
            continue
        seen_keys.add(key)
        scraped_version = scraped_by_key.get(key)
        if scraped_version is None:
            result = identifier_only_version(auth.name, auth.version, auth.identifiers)
        else:
            result = reconcile_version(
                auth.name, auth.version, auth.identifiers, scraped_version.nodes, config,
            )
        run.results.append(result)
        run.report.extend(result.discrepancies)

    for key, scraped_version in scraped_by_key.items():
        if key not in seen_keys:
            logger.warning(
                "%s %s: scraped but absent from the identifier list",
                scraped_version.name, scraped_version.version,
            )
            run.report.extend([version_mismatch_entry(scraped_version.name, scraped_version.version)])

    return run


def reconcile_documents(
    authoritative_doc: Any,
    scrape_doc: Any,
    config: ReconcileConfig | None = None,
    generated_at: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return ``(canonical_doc, discrepancy_doc)`` for the two input documents."""
    run = run_reconciliation(authoritative_doc, scrape_doc, config)
    return (
        run.canonical_document(generated_at=generated_at),
        run.discrepancy_document(generated_at=generated_at),
    )
