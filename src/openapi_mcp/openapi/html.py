from __future__ import annotations

import re
from typing import Optional

from markdownify import markdownify

__all__ = ["contains_html", "html_to_markdown", "normalize_description"]

_TAG_RE = re.compile(r"</?[a-zA-Z][a-zA-Z0-9-]*(\s[^<>]*)?/?>")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def contains_html(text: Optional[str]) -> bool:
    return bool(text) and _TAG_RE.search(text) is not None


def html_to_markdown(text: str) -> str:
    """Best-effort HTML -> Markdown; returns ``text`` unchanged on failure."""
    try:
        converted = markdownify(text, heading_style="ATX", bullets="-")
    except Exception:
        return text
    converted = _BLANK_LINES_RE.sub("\n\n", converted).strip()
    return converted or text


def normalize_description(text: Optional[str], convert_html: bool = True) -> Optional[str]:
    if not text or not convert_html or not contains_html(text):
        return text
    return html_to_markdown(text)
