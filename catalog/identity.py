"""
catalog/identity.py -- Album identity rule: when are two albums "the same"?

Two albums belong to the same owner's collection twice iff

  * their normalized titles are equal, and
  * their normalized artist lists are equal as multisets -- same length,
    same members, same counts, order ignored.

Normalization strips surrounding whitespace, collapses inner whitespace runs
to a single space and lower-cases. It is applied only for comparison; stored
display values keep the caller's casing.

Uniqueness is per owner. Two users may catalog the same release.

The check is read-then-act and there is no unique index behind it, so two
concurrent identical creations for the same owner can both succeed.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalog.store import AlbumStore


def normalize_text(value: str) -> str:
    """Trim, collapse whitespace, and lower-case a title or artist name."""
    return " ".join(value.split()).lower()


def normalize_title(title: str) -> str:
    return normalize_text(title)


def normalize_artists(artists: Iterable[str]) -> list[str]:
    """Normalize every artist name, keeping input order and duplicates."""
    return [normalize_text(a) for a in artists]


def same_artists(left: Iterable[str], right: Iterable[str]) -> bool:
    """Multiset equality over already-normalized artist names."""
    return Counter(left) == Counter(right)


def is_duplicate(
    store: AlbumStore,
    owner_id: str,
    title: str,
    artists: Iterable[str],
    exclude_id: str | None = None,
) -> bool:
    """Return True if owner_id already has an album equivalent to title/artists.

    exclude_id skips one album -- used when an update re-checks an album
    against the rest of its owner's collection.
    """
    wanted_title = normalize_title(title)
    wanted_artists = normalize_artists(artists)
    for candidate in store.find_by_normalized_title(owner_id, wanted_title):
        if exclude_id is not None and candidate.id == exclude_id:
            continue
        if same_artists(candidate.artists_normalized, wanted_artists):
            return True
    return False
