"""
Duplicate candidate detection.

A freshly parsed CV is a duplicate when an existing candidate has the same
email, or failing that the same full name. Both comparisons ignore case and
surrounding whitespace; blank values never match.
"""

from typing import Iterable, Optional, Protocol

EMAIL_EXISTS = "email exists"
NAME_EXISTS = "name exists"


class _HasIdentity(Protocol):
    email: Optional[str]
    full_name: Optional[str]


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def find_duplicate(parsed: _HasIdentity, known_candidates: Iterable[_HasIdentity]) -> Optional[str]:
    """
    Check a parsed candidate against the known candidate collection.

    Email is checked against every known candidate before any name
    comparison, so an email match is always the reported reason.

    Returns:
        EMAIL_EXISTS, NAME_EXISTS, or None when no match is found
    """
    email = _normalize(parsed.email)
    name = _normalize(parsed.full_name)
    if not email and not name:
        return None

    known = list(known_candidates)

    if email and any(_normalize(c.email) == email for c in known):
        return EMAIL_EXISTS

    if name and any(_normalize(c.full_name) == name for c in known):
        return NAME_EXISTS

    return None
