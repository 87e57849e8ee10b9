"""Option-token extraction from free-text node descriptions.

Maps descriptive phrases such as "Option A—Sprinting", "Beef Cattle Option"
or "Inline Skating" to the short canonical option tokens that appear inside
authoritative identifiers ("option a", "beef", "line").

Pure text classification with no domain state.
"""

from __future__ import annotations

import re

# Separator after "Option X": dash variants, period, colon, whitespace, or end.
_OPTION_LETTER_RE = re.compile(r"^Option\s+([A-Z])(?:\s*[—–\-.:]|\s|$)", re.IGNORECASE)
_OPTION_NUMBER_RE = re.compile(r"^Option\s+(\d+)(?:\s*[—–\-.:]|\s|$)", re.IGNORECASE)
_TRAILING_OPTION_RE = re.compile(r"^(.+?)\s*Option$", re.IGNORECASE)

# Full names -> identifier short names. Checked as substrings in insertion
# order; the first hit wins, so longer phrases precede their prefixes.
OPTION_SYNONYMS: dict[str, str] = {
    "beef cattle": "beef",
    "dairying": "dairy",
    "dairy cattle": "dairy",
    "horse": "horse",
    "sheep": "sheep",
    "hog": "hog",
    "swine": "hog",
    "avian": "avian",
    "poultry": "avian",
    "rabbit": "rabbit",
    "ice skating": "ice",
    "inline skating": "line",
    "roller skating": "roll",
    "board skating": "board",
    "skateboard": "board",
    "alpine skiing": "alpine",
    "alpine": "alpine",
    "nordic skiing": "nordic",
    "nordic": "nordic",
    "snowshoeing": "shoe",
    "snowshoe": "shoe",
    "snowboard": "snow",
    "triathlon": "triathlon",
    "duathlon": "duathlon",
    "aquathlon": "aquathlon",
    "aquabike": "aquabike",
    "group 1": "grp 1",
    "group 2": "grp 2",
    "group 3": "grp 3",
    "group 4": "grp 4",
    "group a": "grp a",
    "group b": "grp b",
    "group c": "grp c",
    "group d": "grp d",
    "group e": "grp e",
    "group f": "grp f",
    "group g": "grp g",
    "group h": "grp h",
    "group i": "grp i",
    "opt 1": "opt 1",
    "opt 2": "opt 2",
    "opt 3": "opt 3",
    "opt a": "opt a",
    "opt b": "opt b",
    "opt c": "opt c",
}


def extract_option(text: str | None) -> str | None:
    """Return the canonical option token named by *text*, or None.

    Checks, in order:
    1. leading ``Option <LETTER>`` -> ``"option <letter>"``
    2. leading ``Option <N>`` -> ``"option <n>"``
    3. first synonym (dictionary order) contained in the lower-cased text
    4. ``"<Name ...> Option"`` -> first word of the prefix, lower-cased
    """
    if not text:
        return None
    stripped = text.strip()
    if not stripped:
        return None

    m = _OPTION_LETTER_RE.match(stripped)
    if m:
        return f"option {m.group(1).lower()}"

    m = _OPTION_NUMBER_RE.match(stripped)
    if m:
        return f"option {m.group(1)}"

    lowered = stripped.lower()
    for phrase, token in OPTION_SYNONYMS.items():
        if phrase in lowered:
            return token

    m = _TRAILING_OPTION_RE.match(stripped)
    if m:
        words = m.group(1).strip().split()
        if words:
            return words[0].lower()

    return None
