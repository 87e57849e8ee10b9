"""Core types for checklist reconciliation.

Every component shares these types. Positions are indices into the visual
node sequence of one checklist version; the sequence order is the only
source of hierarchy information.

Type hierarchy:
  VisualNode             one rendered node from the scrape (label, text, checkbox)
  AuthoritativeVersion   identifier list for one checklist name+version
  ScrapedVersion         visual node sequence for one checklist name+version
  MatchAssignment        committed identifier -> node position pairing
  ResolvedNode           visual node tagged header/completable with its id
  CanonicalNode          output tree node
  DiscrepancyEntry       advisory record for a human or a retry job

Also holds the tolerant record coercion for the two accepted document
spellings (native snake_case and the upstream camelCase export).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VisualNode:
    """One element of the scraped, visually ordered node sequence."""

    display_label: str | None    # Raw label as rendered: "2", "(a)", "[1]", or None
    description: str
    has_checkbox: bool
    parent_hint: str | None = None             # Best-effort parent number from the source
    links: tuple[dict[str, Any], ...] = ()     # Passed through untouched
    raw_html: str = ""


VersionKey = int | str


@dataclass(frozen=True, slots=True)
class AuthoritativeVersion:
    """Authoritative identifier list for one checklist version."""

    name: str
    version: VersionKey
    identifiers: tuple[str, ...]
    total_occurrences: int = 0

    def distinct_identifiers(self) -> tuple[str, ...]:
        """Identifiers in first-seen order with repeats removed."""
        return tuple(dict.fromkeys(self.identifiers))


@dataclass(frozen=True, slots=True)
class ScrapedVersion:
    """Visual node sequence for one checklist version plus ignored metadata."""

    name: str
    version: VersionKey
    nodes: tuple[VisualNode, ...]
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])


# ---------------------------------------------------------------------------
# Matching results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MatchAssignment:
    """A committed pairing of an authoritative identifier with a node position.

    ``tied_positions`` lists other unclaimed positions that scored the same
    best confidence; the earliest position always wins.
    """

    identifier: str
    position: int
    confidence: int
    match_type: str
    tied_positions: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError(f"MatchAssignment.position must be >= 0, got {self.position}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(
                f"MatchAssignment.confidence must be in [0, 100], got {self.confidence}"
            )

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.tied_positions)

    def as_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "position": self.position,
            "confidence": self.confidence,
            "match_type": self.match_type,
            "tied_positions": list(self.tied_positions),
        }


@dataclass(frozen=True, slots=True)
class ResolvedNode:
    """A visual node after matching: tagged and carrying its resolved id."""

    position: int
    resolved_id: str
    label: str
    description: str
    is_header: bool
    has_checkbox: bool
    links: tuple[dict[str, Any], ...] = ()


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CanonicalNode:
    """Output tree node. Completables (is_header=False) are always leaves."""

    resolved_id: str
    label: str
    description: str
    is_header: bool
    display_order: int
    parent_id: str | None = None
    links: list[dict[str, Any]] = field(default_factory=list[dict[str, Any]])
    children: list[CanonicalNode] = field(default_factory=list["CanonicalNode"])

    def as_record(self) -> dict[str, Any]:
        return {
            "resolved_id": self.resolved_id,
            "label": self.label,
            "description": self.description,
            "is_header": self.is_header,
            "display_order": self.display_order,
            "parent_id": self.parent_id,
            "links": [dict(link) for link in self.links],
            "children": [child.as_record() for child in self.children],
        }


class DiscrepancyKind(StrEnum):
    CSV_NOT_IN_UI = "csv_not_in_ui"
    UI_NOT_MATCHED = "ui_not_matched"
    BADGE_NOT_ACCESSIBLE = "badge_not_accessible"
    AMBIGUOUS_MATCH = "ambiguous_match"
    VERSION_MISMATCH = "version_mismatch"


@dataclass(frozen=True, slots=True)
class DiscrepancyEntry:
    """Advisory record; never raised, only reported."""

    kind: DiscrepancyKind
    explanation: str
    checklist: str = ""
    version: VersionKey | None = None
    identifier: str | None = None
    label: str | None = None
    suggested_action: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "checklist": self.checklist,
            "version": self.version,
            "identifier": self.identifier,
            "label": self.label,
            "explanation": self.explanation,
            "suggested_action": self.suggested_action,
        }


# ---------------------------------------------------------------------------
# Record coercion
# ---------------------------------------------------------------------------


def _first(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def coerce_version(value: Any) -> VersionKey:
    """Keep integer-like versions as ints ("2025" -> 2025), others as str."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    text = str(value).strip() if value is not None else ""
    if text.isdigit():
        return int(text)
    return text


def version_sort_key(version: VersionKey) -> tuple[int, int, str]:
    """Sort key placing numeric versions newest first, then named versions."""
    if isinstance(version, int):
        return (0, -version, "")
    return (1, 0, str(version))


def visual_node_from_dict(record: Mapping[str, Any]) -> VisualNode:
    """Build a VisualNode from either document spelling."""
    links_raw = _first(record, "links", default=[])
    links: tuple[dict[str, Any], ...] = ()
    if isinstance(links_raw, list):
        links = tuple(dict(link) for link in links_raw if isinstance(link, Mapping))
    return VisualNode(
        display_label=_optional_str(_first(record, "display_label", "displayLabel")),
        description=str(_first(record, "description", default="") or ""),
        has_checkbox=bool(_first(record, "has_checkbox", "hasCheckbox", default=False)),
        parent_hint=_optional_str(
            _first(record, "parent_hint", "parentNumber", "parent_number")
        ),
        links=links,
        raw_html=str(_first(record, "raw_html", "rawHtml", default="") or ""),
    )


def visual_node_to_dict(node: VisualNode) -> dict[str, Any]:
    return {
        "display_label": node.display_label,
        "description": node.description,
        "has_checkbox": node.has_checkbox,
        "parent_hint": node.parent_hint,
        "links": [dict(link) for link in node.links],
        "raw_html": node.raw_html,
    }


def _checklist_rows(doc: Any, what: str) -> list[Mapping[str, Any]]:
    if not isinstance(doc, Mapping):
        raise ValueError(f"{what} document must be a JSON object")
    rows = _first(doc, "checklists", "badges", default=[])
    if not isinstance(rows, list):
        raise ValueError(f"{what} document 'checklists' must be a list")
    return [row for row in rows if isinstance(row, Mapping)]


def authoritative_versions_from_doc(doc: Any) -> list[AuthoritativeVersion]:
    """Parse an authoritative identifier document (either spelling)."""
    versions: list[AuthoritativeVersion] = []
    for row in _checklist_rows(doc, "Authoritative identifier"):
        identifiers_raw = _first(row, "identifiers", "requirementIds", default=[])
        identifiers = tuple(
            str(x) for x in identifiers_raw if x is not None
        ) if isinstance(identifiers_raw, list) else ()
        occurrences = _first(row, "total_occurrences", "totalOccurrences", default=None)
        try:
            total = int(occurrences) if occurrences is not None else len(identifiers)
        except (TypeError, ValueError):
            total = len(identifiers)
        versions.append(AuthoritativeVersion(
            name=str(_first(row, "name", "badgeName", default="")),
            version=coerce_version(_first(row, "version", "versionYear")),
            identifiers=identifiers,
            total_occurrences=total,
        ))
    return versions


_NODE_LIST_KEYS = ("nodes", "requirements")
_NAME_KEYS = ("name", "badgeName")
_VERSION_KEYS = ("version", "versionYear")


def scrape_versions_from_doc(doc: Any) -> list[ScrapedVersion]:
    """Parse a visual-scrape document (either spelling).

    Keys other than name, version and the node list are kept as metadata,
    which reconciliation ignores.
    """
    versions: list[ScrapedVersion] = []
    for row in _checklist_rows(doc, "Visual-scrape"):
        nodes_raw = _first(row, *_NODE_LIST_KEYS, default=[])
        nodes = tuple(
            visual_node_from_dict(n) for n in nodes_raw if isinstance(n, Mapping)
        ) if isinstance(nodes_raw, list) else ()
        metadata = {
            str(k): v for k, v in row.items()
            if k not in _NODE_LIST_KEYS + _NAME_KEYS + _VERSION_KEYS
        }
        versions.append(ScrapedVersion(
            name=str(_first(row, *_NAME_KEYS, default="")),
            version=coerce_version(_first(row, *_VERSION_KEYS)),
            nodes=nodes,
            metadata=metadata,
        ))
    return versions
