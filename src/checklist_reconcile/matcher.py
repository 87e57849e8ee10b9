"""Confidence matching and greedy assignment of identifiers to visual nodes.

Three layers:
  try_match              does this node, under this context, carry this id?
  find_best_match        best unclaimed node for one identifier (floor 75)
  assign_identifiers     greedy one-to-one assignment over an identifier list

plus the direct label pass, which pairs nodes whose label already spells the
identifier (``"1"`` / ``"1a"`` / parent + label) before the context search.

Confidence is a fixed integer per identifier format, ranked by how many
independent fields the format corroborates; it is not a continuous score.
Assignment is greedy in identifier input order and not globally optimal:
two identifiers that are each other's second-best candidate can pair
differently if processed in the other order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import assert_never

from checklist_reconcile.context import (
    SUB_NUMBER_MAX,
    AddressingContext,
    compute_contexts,
)
from checklist_reconcile.id_grammar import (
    IdFormat,
    ParsedId,
    clean_label,
    is_bare_number,
    is_wrapped,
    normalize_id,
    parse_id,
)
from checklist_reconcile.reconcile_types import MatchAssignment, VisualNode

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIDENCE_FLOOR = 75
DIRECT_LABEL_CONFIDENCE = 100
DIRECT_LABEL_MATCH_TYPE = "direct_label"

_CONF_SIMPLE = 95
_CONF_BRACKET_ONLY = 92
_CONF_PAREN_NESTED_HEADER_LETTER = 92
_CONF_THREE_PART = 90
_CONF_NUMBER_ONLY = 90
_CONF_PAREN_NESTED_LETTER = 88
_CONF_PAREN_NESTED_LOOSE = 85
_CONF_BRACKET_OPTION = 85
_CONF_SPACE_OPTION = 85
_CONF_OPTION_FORMAT = 82
_CONF_OPT_FORMAT = 80
_CONF_OPT_DOT_FORMAT = 80
_CONF_PAREN_OPTION = 80
_CONF_OPT_NUM_FORMAT = 78
_CONF_OTHER = 78


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of one match attempt. A non-match always has confidence 0."""

    matched: bool
    confidence: int
    reason: str


def _outcome(matched: bool, confidence: int, reason: str) -> MatchResult:
    return MatchResult(matched=matched, confidence=confidence if matched else 0, reason=reason)


# ---------------------------------------------------------------------------
# Confidence matcher
# ---------------------------------------------------------------------------

def try_match(
    parsed: ParsedId,
    node: VisualNode,
    context: AddressingContext,
) -> MatchResult:
    """Decide whether *node* (with *context* at its position) carries *parsed*.

    Every format requires the context main number to equal the identifier's.
    Formats that encode an option also require the context option to equal
    it (absent matches absent). The node's clean label is compared against
    the deepest field the format names: sub-letter, then sub-number, then
    letter.
    """
    label = clean_label(node.display_label).lower()
    has_main = context.main_number == parsed.main_number
    has_letter = context.letter == parsed.letter
    has_option = context.option == parsed.option

    match parsed.format:
        case IdFormat.SIMPLE:
            # "2a": label "a" under main number 2
            return _outcome(
                label == parsed.letter and has_main,
                _CONF_SIMPLE,
                f"simple: label={label}, expected={parsed.letter}, parent={context.main_number}",
            )

        case IdFormat.BRACKET_ONLY:
            # "6c[1]": label "1" under header letter "c" under main number 6
            under_header_letter = (
                context.letter_is_header and is_bare_number(label, SUB_NUMBER_MAX)
            )
            return _outcome(
                label == parsed.sub_number and has_main and has_letter and under_header_letter,
                _CONF_BRACKET_ONLY,
                f"bracket_only: label={label}, letter={context.letter}, "
                f"letter_is_header={context.letter_is_header}, expected sub={parsed.sub_number}",
            )

        case IdFormat.BRACKET_OPTION:
            # "2a[1] Ice"
            return _outcome(
                label == parsed.sub_number and has_main and has_letter and has_option,
                _CONF_BRACKET_OPTION,
                f"bracket_option: label={label}, option={context.option}, expected={parsed.option}",
            )

        case IdFormat.PAREN_NESTED:
            reason = (
                f"paren_nested: label={label}, letter={context.letter}, "
                f"letter_is_header={context.letter_is_header}, expected sub={parsed.sub_number}"
            )
            if parsed.letter and parsed.sub_number:
                # "3a(1)" / "2(a)(1)"
                confidence = (
                    _CONF_PAREN_NESTED_HEADER_LETTER
                    if context.letter_is_header
                    else _CONF_PAREN_NESTED_LETTER
                )
                return _outcome(
                    label == parsed.sub_number and has_main and has_letter,
                    confidence,
                    reason,
                )
            if parsed.sub_number:
                # "2(1)" / "2(i)"
                return _outcome(
                    label == parsed.sub_number and has_main,
                    _CONF_PAREN_NESTED_LOOSE,
                    reason,
                )
            # "2(a)"
            return _outcome(
                label == parsed.letter and has_main,
                _CONF_PAREN_NESTED_LOOSE,
                reason,
            )

        case IdFormat.THREE_PART:
            # "8a1"
            return _outcome(
                label == parsed.sub_number and has_main and has_letter,
                _CONF_THREE_PART,
                f"three_part: label={label}, expected sub={parsed.sub_number}",
            )

        case IdFormat.SPACE_OPTION:
            # "6c2 hog" compares the sub-number; "6a hog" compares the letter
            if parsed.sub_number:
                matched = (
                    label == parsed.sub_number and has_main and has_letter and has_option
                )
            else:
                matched = label == parsed.letter and has_main and has_option
            return _outcome(
                matched,
                _CONF_SPACE_OPTION,
                f"space_option: label={label}, letter={context.letter}, "
                f"option={context.option}, expected option={parsed.option}",
            )

        case IdFormat.OPT_FORMAT:
            # "5f[1]b Opt A"
            return _outcome(
                has_main and has_option and label == _deepest_field(parsed),
                _CONF_OPT_FORMAT,
                f"opt_format: label={label}, option={context.option}",
            )

        case IdFormat.OPTION_FORMAT:
            # "5 Option A(1)" / "5 Option A (1)(a)"
            expected = parsed.sub_letter or parsed.sub_number
            return _outcome(
                label == expected and has_main and has_option,
                _CONF_OPTION_FORMAT,
                f"option_format: label={label}, expected sub={parsed.sub_number}, "
                f"sub_letter={parsed.sub_letter}, option={context.option}",
            )

        case IdFormat.OPT_DOT_FORMAT:
            # "5. Opt A (1)"
            return _outcome(
                label == parsed.sub_number and has_main and has_option,
                _CONF_OPT_DOT_FORMAT,
                f"opt_dot_format: label={label}, expected sub={parsed.sub_number}, "
                f"option={context.option}",
            )

        case IdFormat.PAREN_OPTION:
            # "6(2) hog"
            return _outcome(
                label == parsed.sub_number and has_main and has_option,
                _CONF_PAREN_OPTION,
                f"paren_option: label={label}, expected sub={parsed.sub_number}, "
                f"option={context.option}",
            )

        case IdFormat.OPT_NUM_FORMAT:
            # "8A Opt 1" / "8A1 Opt 3"
            return _outcome(
                has_main and has_option and label == _deepest_field(parsed),
                _CONF_OPT_NUM_FORMAT,
                f"opt_num_format: label={label}, option={context.option}",
            )

        case IdFormat.OTHER:
            # "6 avian (1)" / "6 avian (4)(a)"
            expected = parsed.sub_letter or parsed.sub_number
            return _outcome(
                label == expected and has_main and has_option,
                _CONF_OTHER,
                f"other: label={label}, expected sub={parsed.sub_number}, "
                f"sub_letter={parsed.sub_letter}, option={context.option}",
            )

        case IdFormat.NUMBER_ONLY:
            # "1": an unwrapped main-number label
            return _outcome(
                label == parsed.main_number
                and has_main
                and not is_wrapped(node.display_label),
                _CONF_NUMBER_ONLY,
                f"number_only: label={label}, parent={context.main_number}",
            )

        case IdFormat.UNKNOWN:
            return _outcome(False, 0, f"unknown format: {parsed.raw!r}")

        case _:
            assert_never(parsed.format)


def _deepest_field(parsed: ParsedId) -> str:
    """Sub-letter, else sub-number, else letter.

    An id with none of them ("5 Opt A") names the option group itself, whose
    node carries no label.
    """
    if parsed.sub_letter:
        return parsed.sub_letter
    if parsed.sub_number:
        return parsed.sub_number
    if parsed.letter:
        return parsed.letter
    return ""


# ---------------------------------------------------------------------------
# Assignment search
# ---------------------------------------------------------------------------

def _resolve_contexts(
    nodes: Sequence[VisualNode],
    contexts: Sequence[AddressingContext] | None,
) -> Sequence[AddressingContext]:
    if contexts is None:
        return compute_contexts(nodes)
    if len(contexts) != len(nodes):
        raise ValueError(
            f"contexts length ({len(contexts)}) must equal nodes length ({len(nodes)})"
        )
    return contexts


def find_best_match(
    identifier: str,
    nodes: Sequence[VisualNode],
    already_claimed: Iterable[int] = (),
    *,
    contexts: Sequence[AddressingContext] | None = None,
) -> MatchAssignment | None:
    """Best unclaimed node for *identifier*, or None below the floor.

    Scans every unclaimed position, keeps the highest confidence seen, and
    keeps the earliest position on ties. Commits only at confidence >= 75.

    Args:
        identifier: Authoritative identifier string.
        nodes: Visual node sequence for one checklist version.
        already_claimed: Positions that earlier assignments own.
        contexts: Precomputed ``compute_contexts(nodes)``; computed if None.
    """
    parsed = parse_id(identifier)
    if parsed.is_unknown:
        return None
    contexts = _resolve_contexts(nodes, contexts)
    claimed = set(already_claimed)

    best_position: int | None = None
    best_confidence = 0
    best_reason = ""
    ties: list[int] = []

    for position, node in enumerate(nodes):
        if position in claimed:
            continue
        result = try_match(parsed, node, contexts[position])
        if not result.matched:
            continue
        if result.confidence > best_confidence:
            best_position = position
            best_confidence = result.confidence
            best_reason = result.reason
            ties = []
        elif result.confidence == best_confidence:
            ties.append(position)

    if best_position is None or best_confidence < CONFIDENCE_FLOOR:
        return None
    return MatchAssignment(
        identifier=identifier,
        position=best_position,
        confidence=best_confidence,
        match_type=best_reason,
        tied_positions=tuple(ties),
    )


@dataclass(slots=True)
class AssignmentOutcome:
    """Committed assignments plus identifiers left unmatched, in input order."""

    assignments: list[MatchAssignment] = field(default_factory=list[MatchAssignment])
    unmatched: list[str] = field(default_factory=list[str])

    @property
    def claimed_positions(self) -> set[int]:
        return {a.position for a in self.assignments}

    @property
    def claimed_identifiers(self) -> set[str]:
        return {a.identifier for a in self.assignments}


def assign_identifiers(
    identifiers: Iterable[str],
    nodes: Sequence[VisualNode],
    *,
    contexts: Sequence[AddressingContext] | None = None,
    claimed_positions: Iterable[int] = (),
) -> AssignmentOutcome:
    """Greedy one-to-one assignment of distinct identifiers to nodes.

    Identifiers are processed in first-seen order. Each commit claims its
    node before the next identifier is scanned, so no two assignments share
    a position and no identifier is committed twice.
    """
    contexts = _resolve_contexts(nodes, contexts)
    claimed = set(claimed_positions)
    outcome = AssignmentOutcome()
    for identifier in dict.fromkeys(identifiers):
        match = find_best_match(identifier, nodes, claimed, contexts=contexts)
        if match is None:
            outcome.unmatched.append(identifier)
            continue
        claimed.add(match.position)
        outcome.assignments.append(match)
    return outcome


# ---------------------------------------------------------------------------
# Direct label pass
# ---------------------------------------------------------------------------

def direct_label_match(
    identifier: str,
    node: VisualNode,
    context: AddressingContext,
) -> bool:
    """True if the node's label, read with its parent, spells *identifier*.

    A wrapped number label (``(3)``) and a bare number label under a header
    letter are only compared in letter notation (``2d[1]``, ``2d(1)``,
    ``2d1``), never as a plain number.
    """
    if not node.display_label:
        return False
    norm_id = normalize_id(identifier)
    norm_label = normalize_id(node.display_label)
    if not norm_id or not norm_label:
        return False
    parent = node.parent_hint or context.main_number
    wrapped_number = is_wrapped(node.display_label) and norm_label.isdigit()

    if (context.letter_is_header or wrapped_number) and norm_label.isdigit():
        if not (context.letter and parent):
            return False
        raw_lower = identifier.strip().lower()
        letter = context.letter
        return (
            raw_lower in (f"{parent}{letter}[{norm_label}]", f"{parent}{letter}({norm_label})")
            or norm_id == f"{parent}{letter}{norm_label}"
        )

    if norm_id == norm_label:
        return True
    if parent and normalize_id(parent + node.display_label) == norm_id:
        return True
    if context.option and parent:
        with_option = normalize_id(f"{parent}{node.display_label} {context.option}")
        if with_option == norm_id:
            return True
    return False


def run_direct_label_pass(
    identifiers: Iterable[str],
    nodes: Sequence[VisualNode],
    *,
    contexts: Sequence[AddressingContext] | None = None,
) -> list[MatchAssignment]:
    """Pair labeled nodes with the first unclaimed identifier they spell.

    Nodes are visited in order; identifiers are tried in first-seen order.
    Each identifier and each node is claimed at most once.
    """
    contexts = _resolve_contexts(nodes, contexts)
    remaining = list(dict.fromkeys(identifiers))
    assignments: list[MatchAssignment] = []
    for position, node in enumerate(nodes):
        if not node.display_label or not remaining:
            continue
        for identifier in remaining:
            if direct_label_match(identifier, node, contexts[position]):
                assignments.append(MatchAssignment(
                    identifier=identifier,
                    position=position,
                    confidence=DIRECT_LABEL_CONFIDENCE,
                    match_type=DIRECT_LABEL_MATCH_TYPE,
                ))
                remaining.remove(identifier)
                break
    return assignments
