"""Grammar registry for authoritative checklist identifiers.

Classifies an identifier string such as ``"6c2 hog"``, ``"2a[1] Ice"`` or
``"5 Option A(1)"`` into one of the known shapes and extracts its structural
fields (main number, letter, sub-number, sub-letter, option token).

Grammars are tried in a fixed priority order, most specific first, because
several of them are prefix-compatible (``"2a[1] Ice"`` also starts like
``"2a[1]"``). The first grammar that matches wins. Anything that matches no
grammar degrades to ``IdFormat.UNKNOWN`` with every field empty.

Priority order:
   1  option_format     5 Option A(1), 5 Option A (1)(a)
   2  opt_dot_format    5. Opt A (1)
   3  other             6 avian (1), 6 avian (4)(a)
   4  paren_option      6(2) hog
   5  opt_format        5f[1]b Opt A, 2a Opt a
   6  opt_num_format    8A Opt 1
   7  opt_num_format    8A1 Opt 3
   8  bracket_option    2a[1] Ice
   9  bracket_only      2d[1]
  10  paren_nested      3a(1), 6b(i), 2(a)(1)
  11  space_option      6c2 hog, 5a Grp 1
  12  three_part        8a1
  13  simple            2a, 2a.
  14  number_only       1, 1.

Also provides the label helpers shared by the context tracker, matcher and
hierarchy builder (clean label, wrapped label, id normalization).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

# ---------------------------------------------------------------------------
# Format tags
# ---------------------------------------------------------------------------


class IdFormat(StrEnum):
    """Closed set of identifier shapes, ranked by specificity."""

    OPTION_FORMAT = "option_format"
    OPT_DOT_FORMAT = "opt_dot_format"
    OTHER = "other"
    PAREN_OPTION = "paren_option"
    OPT_FORMAT = "opt_format"
    OPT_NUM_FORMAT = "opt_num_format"
    BRACKET_OPTION = "bracket_option"
    BRACKET_ONLY = "bracket_only"
    PAREN_NESTED = "paren_nested"
    SPACE_OPTION = "space_option"
    THREE_PART = "three_part"
    SIMPLE = "simple"
    NUMBER_ONLY = "number_only"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ParsedId:
    """Structural view of one authoritative identifier.

    Invariants (enforced in __post_init__):
        - format UNKNOWN implies every structural field is None
        - every other format implies main_number is present
    """

    raw: str
    format: IdFormat
    main_number: str | None = None
    letter: str | None = None
    sub_number: str | None = None
    sub_letter: str | None = None
    option: str | None = None

    def __post_init__(self) -> None:
        fields_set = (
            self.main_number, self.letter, self.sub_number,
            self.sub_letter, self.option,
        )
        if self.format is IdFormat.UNKNOWN:
            if any(f is not None for f in fields_set):
                raise ValueError(
                    f"ParsedId({self.raw!r}) has format=unknown but non-empty fields"
                )
        elif self.main_number is None:
            raise ValueError(
                f"ParsedId({self.raw!r}) has format={self.format} but no main_number"
            )

    @property
    def is_unknown(self) -> bool:
        return self.format is IdFormat.UNKNOWN

    def as_dict(self) -> dict[str, str | None]:
        return {
            "raw": self.raw,
            "format": str(self.format),
            "main_number": self.main_number,
            "letter": self.letter,
            "sub_number": self.sub_number,
            "sub_letter": self.sub_letter,
            "option": self.option,
        }


# ---------------------------------------------------------------------------
# Regex patterns, in priority order
# ---------------------------------------------------------------------------

_OPTION_FORMAT_RE = re.compile(
    r"^(\d+)\s+Option\s+([A-Z])\s*\((\d+)\)(?:\(([a-z])\))?", re.IGNORECASE,
)
_OPT_DOT_FORMAT_RE = re.compile(
    r"^(\d+)\.\s*Opt\s+([A-Z])\s*\((\d+)\)", re.IGNORECASE,
)
_OTHER_RE = re.compile(
    r"^(\d+)\s+(\w+)\s*\((\d+)\)(?:\(([a-z])\))?", re.IGNORECASE,
)
_PAREN_OPTION_RE = re.compile(r"^(\d+)\((\d+)\)\s+(\w+)", re.IGNORECASE)
_OPT_FORMAT_RE = re.compile(
    r"^(\d+)([a-z])?(?:\[(\d+)\])?([a-z])?\s+Opt\s+([a-z])", re.IGNORECASE,
)
_OPT_NUM_LETTER_RE = re.compile(r"^(\d+)([a-z])\s+Opt\s+(\d+)", re.IGNORECASE)
_OPT_NUM_LETTER_NUMBER_RE = re.compile(
    r"^(\d+)([a-z])(\d+)\s+Opt\s+(\d+)", re.IGNORECASE,
)
_BRACKET_OPTION_RE = re.compile(r"^(\d+)([a-z])\[(\d+)\]\s+(\w+)", re.IGNORECASE)
_BRACKET_ONLY_RE = re.compile(r"^(\d+)([a-z])\[(\d+)\]$", re.IGNORECASE)
_PAREN_NESTED_RE = re.compile(
    r"^(\d+)([a-z])?\(([a-z]|\d+|[ivx]+)\)(?:\((\d+)\))?", re.IGNORECASE,
)
_SPACE_OPTION_RE = re.compile(r"^(\d+)([a-z])(\d+)?\s+(.+)$", re.IGNORECASE)
_THREE_PART_RE = re.compile(r"^(\d+)([a-z])(\d+)$", re.IGNORECASE)
_SIMPLE_RE = re.compile(r"^(\d+)([a-z])\.?$", re.IGNORECASE)
_NUMBER_ONLY_RE = re.compile(r"^(\d+)\.?$")

# Parenthesized content treated as a sub-number rather than a letter.
# Single "v"/"x" stay letters; "i" and every multi-char numeral are roman.
_ROMAN_SUB_NUMBERS = frozenset({
    "i", "ii", "iii", "iv", "vi", "vii", "viii", "ix",
    "xi", "xii", "xiii", "xiv", "xv", "xvi", "xvii", "xviii", "xix", "xx",
})


def _lower(value: str | None) -> str | None:
    return value.lower() if value else None


# ---------------------------------------------------------------------------
# Per-grammar builders
# ---------------------------------------------------------------------------

def _build_option_format(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OPTION_FORMAT,
        main_number=m.group(1),
        sub_number=m.group(3),
        sub_letter=_lower(m.group(4)),
        option=f"option {m.group(2).lower()}",
    )


def _build_opt_dot_format(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OPT_DOT_FORMAT,
        main_number=m.group(1),
        sub_number=m.group(3),
        option=f"opt {m.group(2).lower()}",
    )


def _build_other(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OTHER,
        main_number=m.group(1),
        sub_number=m.group(3),
        sub_letter=_lower(m.group(4)),
        option=m.group(2).lower(),
    )


def _build_paren_option(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.PAREN_OPTION,
        main_number=m.group(1),
        sub_number=m.group(2),
        option=m.group(3).lower(),
    )


def _build_opt_format(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OPT_FORMAT,
        main_number=m.group(1),
        letter=_lower(m.group(2)),
        sub_number=m.group(3),
        sub_letter=_lower(m.group(4)),
        option=f"opt {m.group(5).lower()}",
    )


def _build_opt_num_letter(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OPT_NUM_FORMAT,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        option=f"opt {m.group(3)}",
    )


def _build_opt_num_letter_number(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.OPT_NUM_FORMAT,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        sub_number=m.group(3),
        option=f"opt {m.group(4)}",
    )


def _build_bracket_option(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.BRACKET_OPTION,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        sub_number=m.group(3),
        option=m.group(4).lower(),
    )


def _build_bracket_only(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.BRACKET_ONLY,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        sub_number=m.group(3),
    )


def _build_paren_nested(raw: str, m: re.Match[str]) -> ParsedId | None:
    inner = m.group(3).lower()
    if inner.isdigit() or inner in _ROMAN_SUB_NUMBERS:
        # "3a(1)" / "6b(i)": sub-number under the outer letter
        return ParsedId(
            raw=raw,
            format=IdFormat.PAREN_NESTED,
            main_number=m.group(1),
            letter=_lower(m.group(2)),
            sub_number=inner,
        )
    if len(inner) != 1:
        # multi-letter content that is not a numeral, e.g. "2(vv)"
        return None
    # "2(a)(1)": the parenthesized letter is the letter itself
    return ParsedId(
        raw=raw,
        format=IdFormat.PAREN_NESTED,
        main_number=m.group(1),
        letter=inner,
        sub_number=m.group(4),
    )


def _build_space_option(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.SPACE_OPTION,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        sub_number=m.group(3),
        option=m.group(4).lower(),
    )


def _build_three_part(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.THREE_PART,
        main_number=m.group(1),
        letter=m.group(2).lower(),
        sub_number=m.group(3),
    )


def _build_simple(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(
        raw=raw,
        format=IdFormat.SIMPLE,
        main_number=m.group(1),
        letter=m.group(2).lower(),
    )


def _build_number_only(raw: str, m: re.Match[str]) -> ParsedId:
    return ParsedId(raw=raw, format=IdFormat.NUMBER_ONLY, main_number=m.group(1))


# A builder returns None to reject its regex match; the parser then moves on
# to the next grammar.
_Builder = Callable[[str, re.Match[str]], ParsedId | None]

GRAMMARS: tuple[tuple[IdFormat, re.Pattern[str], _Builder], ...] = (
    (IdFormat.OPTION_FORMAT, _OPTION_FORMAT_RE, _build_option_format),
    (IdFormat.OPT_DOT_FORMAT, _OPT_DOT_FORMAT_RE, _build_opt_dot_format),
    (IdFormat.OTHER, _OTHER_RE, _build_other),
    (IdFormat.PAREN_OPTION, _PAREN_OPTION_RE, _build_paren_option),
    (IdFormat.OPT_FORMAT, _OPT_FORMAT_RE, _build_opt_format),
    (IdFormat.OPT_NUM_FORMAT, _OPT_NUM_LETTER_RE, _build_opt_num_letter),
    (IdFormat.OPT_NUM_FORMAT, _OPT_NUM_LETTER_NUMBER_RE, _build_opt_num_letter_number),
    (IdFormat.BRACKET_OPTION, _BRACKET_OPTION_RE, _build_bracket_option),
    (IdFormat.BRACKET_ONLY, _BRACKET_ONLY_RE, _build_bracket_only),
    (IdFormat.PAREN_NESTED, _PAREN_NESTED_RE, _build_paren_nested),
    (IdFormat.SPACE_OPTION, _SPACE_OPTION_RE, _build_space_option),
    (IdFormat.THREE_PART, _THREE_PART_RE, _build_three_part),
    (IdFormat.SIMPLE, _SIMPLE_RE, _build_simple),
    (IdFormat.NUMBER_ONLY, _NUMBER_ONLY_RE, _build_number_only),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_id(identifier: str) -> ParsedId:
    """Classify an authoritative identifier and extract its fields.

    Total: never raises. Identifiers that fit no grammar come back as
    ``IdFormat.UNKNOWN`` with every structural field empty.

    Examples::

        parse_id("2a[1] Ice")      # bracket_option  2 / a / 1 / ice
        parse_id("2d[1]")          # bracket_only    2 / d / 1
        parse_id("8a1")            # three_part      8 / a / 1
        parse_id("5 Option A(1)")  # option_format   5 / - / 1 / option a
    """
    raw = identifier if isinstance(identifier, str) else ""
    text = raw.strip()
    if text:
        for _fmt, pattern, builder in GRAMMARS:
            m = pattern.match(text)
            if m is None:
                continue
            parsed = builder(raw, m)
            if parsed is not None:
                return parsed
    return ParsedId(raw=raw, format=IdFormat.UNKNOWN)


# ---------------------------------------------------------------------------
# Label helpers
# ---------------------------------------------------------------------------

_LABEL_PUNCT_RE = re.compile(r"[()\[\].,]")
_ID_BRACKETS_RE = re.compile(r"[()\[\]]")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_label(raw_label: str | None) -> str:
    """Strip ``()[].,`` from a display label and trim: ``"(1)"`` -> ``"1"``."""
    if not raw_label:
        return ""
    return _LABEL_PUNCT_RE.sub("", raw_label).strip()


def is_wrapped(raw_label: str | None) -> bool:
    """True if the display label opens with ``(`` or ``[``."""
    if not raw_label:
        return False
    return raw_label.strip().startswith(("(", "["))


def is_bare_number(label: str, limit: int) -> bool:
    """True if *label* is all digits with value <= *limit*."""
    return label.isascii() and label.isdigit() and int(label) <= limit


def is_single_letter(label: str) -> bool:
    return len(label) == 1 and label.isascii() and label.isalpha()


def normalize_id(value: str | None) -> str:
    """Normalize an identifier or label for equality checks.

    ``"1(a)"`` -> ``"1a"``, ``"2a."`` -> ``"2a"``, ``" 6A  Hog "`` -> ``"6a hog"``.
    """
    if not value:
        return ""
    text = _ID_BRACKETS_RE.sub("", value)
    text = text.strip()
    if text.endswith("."):
        text = text[:-1]
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip().lower()
