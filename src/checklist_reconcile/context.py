"""Addressing-context tracker over the visual node sequence.

The context at a cursor position is the "current address" a reader would
hold after reading nodes ``0..cursor``: active main number, active letter
(and whether that letter is a header), active sub-letter, active option.

The context is causal: it depends only on nodes at or before the cursor, so
appending nodes never changes an earlier context. ``context_at`` folds from
scratch; ``compute_contexts`` produces every context in one left-to-right
pass. Both go through the same transition function and agree exactly.

Transition rules (first matching rule per node wins):
  1. bare number <= 20, label not wrapped   -> new main number, reset the rest
  2. no label, description names an option  -> set option, reset letter state
  3. single letter                          -> set letter (header = no checkbox)
  4. bare number <= 10, label wrapped       -> sub-item, no change
  5. single letter after the letter's node  -> set sub-letter
  otherwise                                 -> no change
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from checklist_reconcile.id_grammar import (
    clean_label,
    is_bare_number,
    is_single_letter,
    is_wrapped,
)
from checklist_reconcile.options import extract_option
from checklist_reconcile.reconcile_types import VisualNode

MAIN_NUMBER_MAX = 20
SUB_NUMBER_MAX = 10


@dataclass(frozen=True, slots=True)
class AddressingContext:
    """Context derived from nodes ``0..cursor``. Never stored across runs."""

    main_number: str | None = None
    letter: str | None = None
    letter_is_header: bool = False
    sub_letter: str | None = None
    option: str | None = None
    letter_position: int | None = None

    def __post_init__(self) -> None:
        if self.letter is None and self.letter_is_header:
            raise ValueError("AddressingContext.letter_is_header requires a letter")

    def as_dict(self) -> dict[str, str | bool | int | None]:
        return {
            "main_number": self.main_number,
            "letter": self.letter,
            "letter_is_header": self.letter_is_header,
            "sub_letter": self.sub_letter,
            "option": self.option,
            "letter_position": self.letter_position,
        }


EMPTY_CONTEXT = AddressingContext()


def advance_context(
    context: AddressingContext,
    node: VisualNode,
    position: int,
) -> AddressingContext:
    """Apply one node's transition rule to *context*."""
    raw_label = node.display_label or ""
    label = clean_label(raw_label)
    wrapped = is_wrapped(raw_label)

    if is_bare_number(label, MAIN_NUMBER_MAX) and not wrapped:
        return AddressingContext(main_number=label)

    if not raw_label and node.description:
        option = extract_option(node.description)
        if option:
            return replace(
                context,
                option=option,
                letter=None,
                letter_is_header=False,
                sub_letter=None,
                letter_position=None,
            )

    if is_single_letter(label):
        letter = label.lower()
        sub_letter = context.sub_letter
        if context.letter is not None and context.letter != letter:
            sub_letter = None
        return replace(
            context,
            letter=letter,
            letter_is_header=not node.has_checkbox,
            sub_letter=sub_letter,
            letter_position=position,
        )

    if is_bare_number(label, SUB_NUMBER_MAX) and wrapped:
        return context

    if (
        is_single_letter(label)
        and context.letter_position is not None
        and position > context.letter_position
    ):
        return replace(context, sub_letter=label.lower())

    return context


def context_at(nodes: Sequence[VisualNode], cursor: int) -> AddressingContext:
    """Fold the transition rules over ``nodes[0..cursor]`` from scratch.

    A negative cursor yields the empty context; a cursor past the end folds
    the whole sequence.
    """
    context = EMPTY_CONTEXT
    if cursor < 0:
        return context
    for position, node in enumerate(nodes[:cursor + 1]):
        context = advance_context(context, node, position)
    return context


def compute_contexts(nodes: Sequence[VisualNode]) -> list[AddressingContext]:
    """Context at every position in one causal left-to-right pass.

    ``compute_contexts(nodes)[i] == context_at(nodes, i)`` for every i.
    """
    contexts: list[AddressingContext] = []
    context = EMPTY_CONTEXT
    for position, node in enumerate(nodes):
        context = advance_context(context, node, position)
        contexts.append(context)
    return contexts
