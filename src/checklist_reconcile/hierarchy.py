"""Level-stack hierarchy builder for resolved checklist nodes.

Converts the flat, order-preserving node sequence (each node already tagged
header or completable) into a forest of CanonicalNode trees.

Header levels come from the label shape:
  level 0: bare main number "2", or an unlabeled header with no option cue
  level 1: unlabeled header naming an option or sub-activity
  level 2: single letter "(a)"
  level 3: wrapped number "(1)", or a compound label with a trailing digit "4a1"

A header pops every stack entry at its level or deeper, attaches under the
new top (or becomes a root), then pushes itself. A completable sits one
level below the current top, attaches there, and is never pushed, so
completables are always leaves. Children keep visitation order.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

from checklist_reconcile.context import MAIN_NUMBER_MAX
from checklist_reconcile.id_grammar import (
    clean_label,
    is_bare_number,
    is_single_letter,
    is_wrapped,
)
from checklist_reconcile.reconcile_types import CanonicalNode, ResolvedNode

LEVEL_MAIN = 0
LEVEL_OPTION = 1
LEVEL_LETTER = 2
LEVEL_SUB = 3

_OPTION_HEADER_RE = re.compile(
    r"Option|Swimming|Biking|Running|Cycling|Ice|Inline|Alpine|Nordic",
    re.IGNORECASE,
)
_COMPOUND_LABEL_RE = re.compile(r"^(\d+)([a-z])?(\d)?", re.IGNORECASE)


def label_level(raw_label: str | None, description: str = "") -> int:
    """Nesting level of a header node, derived from its label shape."""
    if not raw_label:
        if _OPTION_HEADER_RE.search(description or ""):
            return LEVEL_OPTION
        return LEVEL_MAIN

    label = clean_label(raw_label)
    wrapped = is_wrapped(raw_label)

    if is_bare_number(label, MAIN_NUMBER_MAX) and not wrapped:
        return LEVEL_MAIN
    if is_single_letter(label):
        return LEVEL_LETTER
    if wrapped and label.isascii() and label.isdigit():
        return LEVEL_SUB

    m = _COMPOUND_LABEL_RE.match(label)
    if m:
        if m.group(3):
            return LEVEL_SUB
        if m.group(2):
            return LEVEL_LETTER
        return LEVEL_MAIN

    return LEVEL_OPTION


def build_tree(resolved: Sequence[ResolvedNode]) -> list[CanonicalNode]:
    """Stack-walk the resolved sequence into ordered root nodes."""
    roots: list[CanonicalNode] = []
    # Stack entries: (node, level); only headers are pushed
    stack: list[tuple[CanonicalNode, int]] = []

    for item in resolved:
        node = CanonicalNode(
            resolved_id=item.resolved_id,
            label=item.label,
            description=item.description,
            is_header=item.is_header,
            display_order=item.position,
            links=[dict(link) for link in item.links],
        )

        if item.is_header:
            level = label_level(item.label, item.description)
            while stack and stack[-1][1] >= level:
                stack.pop()
        else:
            level = stack[-1][1] + 1 if stack else LEVEL_MAIN

        if stack:
            parent = stack[-1][0]
            node.parent_id = parent.resolved_id
            parent.children.append(node)
        else:
            roots.append(node)

        if item.is_header:
            stack.append((node, level))

    return roots


# ---------------------------------------------------------------------------
# Traversal helpers
# ---------------------------------------------------------------------------

def iter_preorder(roots: Sequence[CanonicalNode]) -> Iterator[CanonicalNode]:
    """Depth-first pre-order walk over a forest."""
    pending: list[CanonicalNode] = list(reversed(roots))
    while pending:
        node = pending.pop()
        yield node
        pending.extend(reversed(node.children))


def completable_ids(roots: Sequence[CanonicalNode]) -> list[str]:
    """Resolved ids of completable nodes in pre-order."""
    return [n.resolved_id for n in iter_preorder(roots) if not n.is_header]


def count_nodes(roots: Sequence[CanonicalNode]) -> int:
    return sum(1 for _ in iter_preorder(roots))


def tree_depth(roots: Sequence[CanonicalNode]) -> int:
    """Number of edges on the longest root-to-leaf path (0 for flat lists)."""
    deepest = 0
    pending: list[tuple[CanonicalNode, int]] = [(r, 0) for r in roots]
    while pending:
        node, depth = pending.pop()
        deepest = max(deepest, depth)
        pending.extend((child, depth + 1) for child in node.children)
    return deepest


def find_node(roots: Sequence[CanonicalNode], resolved_id: str) -> CanonicalNode | None:
    for node in iter_preorder(roots):
        if node.resolved_id == resolved_id:
            return node
    return None
