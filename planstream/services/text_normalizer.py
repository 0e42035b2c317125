"""Markdown decoration stripping and comparison keys for task text."""
from __future__ import annotations

import re

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")
_CODE_RE = re.compile(r"`(.*?)`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_decoration(text: str) -> str:
    """Drop bold, italic, code and link markup, keeping link labels."""
    # Bold before italic so "**x**" is not read as two empty italics.
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _CODE_RE.sub(r"\1", text)
    text = _LINK_RE.sub(r"\1", text)
    return text.strip()


def normalize_for_comparison(text: str) -> str:
    """Lowercased, punctuation-free, single-spaced form used to compare tasks."""
    text = strip_decoration(text).lower()
    text = _PUNCTUATION_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()
