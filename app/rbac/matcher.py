"""
Permission pattern matching.

Granted permission slugs may contain `*` wildcards:

    matches("categories.read", "categories.read")   # exact
    matches("categories.read", "categories.*")      # any action on a resource
    matches("categories.read", "*.read")            # one action on any resource
    matches("categories.read", "*")                 # everything

A `*` matches any run of characters (including none); every other
character is literal, so `.` in a pattern only ever matches a dot.
Matching is case-sensitive and anchored to the whole slug.  Inputs are
expected to be normalized already; nothing here lowercases.
"""

import functools
import re
from collections.abc import Iterable

WILDCARD = "*"

_SEGMENT_RE = re.compile(r"[a-z0-9\-*]+")
_WHITESPACE_RE = re.compile(r"\s+")
_PERMISSION_INVALID_RE = re.compile(r"[^a-z0-9.*\-]")
_ROLE_INVALID_RE = re.compile(r"[^a-z0-9\-]")


@functools.lru_cache(maxsize=1024)
def _compile(pattern: str) -> re.Pattern[str]:
    parts = (re.escape(chunk) for chunk in pattern.split(WILDCARD))
    return re.compile(".*".join(parts), re.DOTALL)


def matches(slug: str, pattern: str) -> bool:
    """Return True if the concrete `slug` is covered by `pattern`."""
    if not pattern:
        return False
    if pattern == WILDCARD:
        return True
    if WILDCARD not in pattern:
        return slug == pattern
    return _compile(pattern).fullmatch(slug) is not None


def has_any(required: Iterable[str], granted: Iterable[str]) -> bool:
    """True if at least one required slug is covered by a granted pattern."""
    granted = list(granted)
    return any(matches(slug, pattern) for slug in required for pattern in granted)


def has_all(required: Iterable[str], granted: Iterable[str]) -> bool:
    """True if every required slug is covered by some granted pattern."""
    granted = list(granted)
    return all(any(matches(slug, pattern) for pattern in granted) for slug in required)


def missing(required: Iterable[str], granted: Iterable[str]) -> list[str]:
    """Required slugs that no granted pattern covers, in input order."""
    granted = list(granted)
    return [slug for slug in required if not any(matches(slug, p) for p in granted)]


def expand(pattern: str, universe: Iterable[str]) -> list[str]:
    """Subset of `universe` covered by `pattern`, in input order."""
    return [slug for slug in universe if matches(slug, pattern)]


def is_valid_permission_slug(slug: str) -> bool:
    """
    A slug is either the total wildcard `*` or exactly two non-empty
    dot-separated segments made of `[a-z0-9-*]`.
    """
    if not slug or not slug.strip():
        return False
    if slug == WILDCARD:
        return True

    parts = slug.split(".")
    if len(parts) != 2:
        return False
    return all(_SEGMENT_RE.fullmatch(part) for part in parts)


def normalize_permission_slug(slug: str) -> str:
    """`" Categories Read "` → `"categories.read"`."""
    slug = _WHITESPACE_RE.sub(".", slug.strip().lower())
    return _PERMISSION_INVALID_RE.sub("", slug)


def normalize_role_slug(slug: str) -> str:
    """`" Super Admin "` → `"super-admin"`."""
    slug = _WHITESPACE_RE.sub("-", slug.strip().lower())
    return _ROLE_INVALID_RE.sub("", slug)
