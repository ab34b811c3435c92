"""Small text helpers used when building prompts and e-mails."""

import re
from typing import Iterable, Optional


def truncate_text(text: Optional[str], max_length: int = 100, suffix: str = "...") -> str:
    """Cut ``text`` to ``max_length`` characters and append ``suffix`` if cut.

    Example:
        >>> truncate_text("Senior React Developer", max_length=6)
        'Senior...'
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + suffix


def normalize_terms(terms: Optional[Iterable[str]]) -> list:
    """Strip whitespace, drop blanks and duplicates, preserve first-seen order."""
    seen = set()
    result = []
    for term in terms or []:
        if term is None:
            continue
        stripped = re.sub(r"\s+", " ", str(term)).strip()
        if not stripped:
            continue
        key = stripped.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(stripped)
    return result
