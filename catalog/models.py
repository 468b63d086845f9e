"""
catalog/models.py -- Domain dataclasses and vocabularies for the album catalog.

These are pure data containers with zero logic. Normalization and duplicate
detection live in catalog/identity.py; persistence lives in catalog/store.py.

The vocabularies below are the single source of truth for the enumerated
fields. api/models.py builds its Literal types from them so request
validation and the stored data never disagree.
"""

from dataclasses import dataclass, field
from typing import Optional

ALBUM_FORMATS: tuple[str, ...] = (
    "LP",
    "EP",
    "Reissue",
    "Live",
    "Compilation",
    "Box Set",
    "Holiday",
    "Instrumental",
    "Remix",
    "Soundtrack",
    "Mixtape",
)

EMOTIONAL_DIMENSIONS: tuple[str, ...] = (
    "melancholic",
    "euphoric",
    "introspective",
    "energetic",
    "nostalgic",
    "anxious",
    "peaceful",
    "rebellious",
    "angry",
    "joyful",
    "contemplative",
    "dreamy",
)

SONIC_DIMENSIONS: tuple[str, ...] = (
    "lo-fi",
    "polished",
    "experimental",
    "minimalist",
    "layered",
    "raw",
    "atmospheric",
    "abrasive",
    "dense",
    "spacious",
    "organic",
    "synthetic",
)

CONNECTION_TYPES: tuple[str, ...] = (
    "influences",
    "similar-to",
    "contrasts-with",
    "evokes",
    "progression",
    "thematic",
    "discovered-through",
    "samples",
)

LISTENING_FREQUENCIES: tuple[str, ...] = ("once", "occasional", "regular", "obsessive")


@dataclass
class Album:
    """A cataloged release owned by exactly one user.

    owner_id is set once at creation and never rewritten -- AlbumStore.update_album
    refuses it. title_normalized / artists_normalized are derived copies used
    only for duplicate detection; title / artists keep the display values.

    Nested groups (personal_note, dimensions, listening_context, connections)
    are plain dicts/lists; they carry no invariants the pipeline cares about.

    id is None before the record is written to the database.
    """

    title: str
    artists: list[str]
    owner_id: str
    id: Optional[str] = None
    format: Optional[str] = None
    release_date: Optional[str] = None  # YYYY-MM-DD
    labels: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    cover_art_url: Optional[str] = None
    cover_art_id: Optional[str] = None
    personal_note: dict = field(default_factory=dict)  # content, last_edited, word_count
    dimensions: dict = field(default_factory=dict)  # emotional, sonic
    connections: list[dict] = field(default_factory=list)  # album, type, note
    listening_context: dict = field(default_factory=dict)  # first_listen, last_listen, frequency, context
    title_normalized: str = ""
    artists_normalized: list[str] = field(default_factory=list)
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
