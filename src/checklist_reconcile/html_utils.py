"""HTML text recovery for scraped nodes whose description came back empty.

The scraper keeps the rendered HTML of each node. When the text extraction
upstream missed the description, the HTML still holds it.
"""
from __future__ import annotations

import re
from dataclasses import replace

from bs4 import BeautifulSoup

from checklist_reconcile.reconcile_types import VisualNode

DESCRIPTION_MAX_CHARS = 500

# U+200B (ZWSP), U+200C (ZWNJ), U+200D (ZWJ), U+FEFF (BOM)
_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\ufeff]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_zero_width(text: str) -> str:
    """Remove zero-width Unicode characters that break label matching."""
    return _ZERO_WIDTH_RE.sub("", text)


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_html(raw_html: str) -> str:
    """Extract single-line text from HTML. Empty string if *raw_html* is empty."""
    if not raw_html:
        return ""
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return _collapse_whitespace(strip_zero_width(text))


def recover_description(node: VisualNode, *, max_chars: int = DESCRIPTION_MAX_CHARS) -> VisualNode:
    """Return *node* with an empty description filled from its raw HTML.

    The rendered label is removed from the front of the recovered text when
    present. Nodes that already have a description, or carry no HTML, come
    back unchanged.
    """
    if node.description.strip() or not node.raw_html:
        return node
    text = strip_html(node.raw_html)
    label = (node.display_label or "").strip()
    if label and text.startswith(label):
        text = text[len(label):].lstrip()
    if not text:
        return node
    return replace(node, description=text[:max_chars].rstrip())
