"""
catalog/seed.py -- Sample albums for a fresh install.

seed_albums() loads SAMPLE_ALBUMS into one user's collection. It goes
through the duplicate rule like any other create, so running it twice for
the same user adds nothing the second time.

Cover art points at public Wikimedia URLs; cover_art_id values are not
Cloudinary assets, so deleting a seeded album logs a failed image cleanup
and carries on.
"""

from __future__ import annotations

import logging

from catalog.identity import is_duplicate
from catalog.models import Album
from catalog.store import AlbumStore

logger = logging.getLogger("craterra.catalog")


def _note(content: str, last_edited: str) -> dict:
    return {"content": content, "last_edited": last_edited, "word_count": len(content.split())}


SAMPLE_ALBUMS: list[dict] = [
    {
        "title": "After Laughter",
        "artists": ["Paramore"],
        "format": "LP",
        "release_date": "2017-05-12",
        "labels": ["Fueled by Ramen", "Atlantic"],
        "genres": ["Alternative Rock", "New Wave", "Pop Rock"],
        "cover_art_url": "https://upload.wikimedia.org/wikipedia/en/7/7a/Paramore_-_After_Laughter.png",
        "cover_art_id": "paramore_after_laughter_cover",
        "personal_note": _note(
            "A bright yet bittersweet record that marks Paramore's evolution.", "2024-03-10T10:15:00+00:00"
        ),
        "dimensions": {
            "emotional": ["melancholic", "nostalgic", "energetic"],
            "sonic": ["polished", "layered", "synthetic"],
        },
        "tags": ["favorite", "summer", "pop-rock"],
        "listening_context": {
            "first_listen": "2017-05-13T22:00:00+00:00",
            "last_listen": "2025-10-05T14:20:00+00:00",
            "frequency": "regular",
            "context": "Perfect for energetic work sessions.",
        },
    },
    {
        "title": "Poster Girl",
        "artists": ["Zara Larsson"],
        "format": "LP",
        "release_date": "2021-03-05",
        "labels": ["TEN Music Group", "Epic Records"],
        "genres": ["Pop", "Dance", "Electropop"],
        "cover_art_url": "https://upload.wikimedia.org/wikipedia/en/d/df/Zara_Larsson_-_Poster_Girl.png",
        "cover_art_id": "zara_poster_girl_cover",
        "personal_note": _note("Zara's confidence shines here, pure pop perfection.", "2024-11-03T17:00:00+00:00"),
        "dimensions": {"emotional": ["euphoric", "joyful"], "sonic": ["polished", "synthetic", "layered"]},
        "tags": ["pop", "dancefloor", "modern"],
        "listening_context": {
            "first_listen": "2021-03-06T12:00:00+00:00",
            "last_listen": "2025-10-10T18:45:00+00:00",
            "frequency": "regular",
            "context": "Workout playlist essential.",
        },
    },
    {
        "title": "Merry Christmas",
        "artists": ["Mariah Carey"],
        "format": "Holiday",
        "release_date": "1994-10-28",
        "labels": ["Columbia Records"],
        "genres": ["Christmas", "Pop", "R&B"],
        "cover_art_url": "https://upload.wikimedia.org/wikipedia/en/f/f3/Mariah_Carey_-_Merry_Christmas.png",
        "cover_art_id": "mariah_merry_christmas_cover",
        "personal_note": _note("Timeless holiday classic, her vocals are unmatched.", "2024-12-24T09:00:00+00:00"),
        "dimensions": {"emotional": ["joyful", "nostalgic", "peaceful"], "sonic": ["polished", "organic", "layered"]},
        "tags": ["holiday", "classic", "timeless"],
        "listening_context": {
            "first_listen": "1995-12-01T19:00:00+00:00",
            "last_listen": "2024-12-25T10:00:00+00:00",
            "frequency": "regular",
            "context": "Played every Christmas morning.",
        },
    },
    {
        "title": "Camila",
        "artists": ["Camila Cabello"],
        "format": "LP",
        "release_date": "2018-01-12",
        "labels": ["Epic Records", "SYCO Music"],
        "genres": ["Pop", "Latin Pop", "R&B"],
        "cover_art_url": "https://upload.wikimedia.org/wikipedia/en/5/58/Camila_Cabello_-_Camila.png",
        "cover_art_id": "camila_camila_cover",
        "personal_note": _note(
            "A confident solo debut full of warmth and Latin influence.", "2024-08-20T20:00:00+00:00"
        ),
        "dimensions": {"emotional": ["euphoric", "energetic"], "sonic": ["polished", "organic", "layered"]},
        "tags": ["debut", "latin", "pop"],
        "listening_context": {
            "first_listen": "2018-01-12T21:00:00+00:00",
            "last_listen": "2025-10-01T20:00:00+00:00",
            "frequency": "regular",
            "context": "Evening listening with friends.",
        },
    },
    {
        "title": "1989 (Taylor's Version)",
        "artists": ["Taylor Swift"],
        "format": "Reissue",
        "release_date": "2023-10-27",
        "labels": ["Republic Records"],
        "genres": ["Pop", "Synthpop"],
        "cover_art_url": (
            "https://upload.wikimedia.org/wikipedia/en/e/e8/Taylor_Swift_-_1989_%28Taylor%27s_Version%29.png"
        ),
        "cover_art_id": "taylor_1989_tv_cover",
        "personal_note": _note(
            "Reclaiming her pop era: mature, nostalgic, and immaculate.", "2024-03-05T18:30:00+00:00"
        ),
        "dimensions": {
            "emotional": ["nostalgic", "joyful", "introspective"],
            "sonic": ["polished", "layered", "synthetic"],
        },
        "tags": ["re-recording", "pop", "empowerment"],
        "listening_context": {
            "first_listen": "2023-10-27T01:00:00+00:00",
            "last_listen": "2025-10-29T18:00:00+00:00",
            "frequency": "obsessive",
            "context": "Late-night drives and nostalgia trips.",
        },
    },
]


def seed_albums(store: AlbumStore, owner_id: str) -> int:
    """Add SAMPLE_ALBUMS to owner_id's collection. Returns how many were added."""
    added = 0
    for sample in SAMPLE_ALBUMS:
        if is_duplicate(store, owner_id, sample["title"], sample["artists"]):
            logger.info("Skipping %r: already in collection", sample["title"])
            continue
        store.create_album(Album(owner_id=owner_id, **sample))
        added += 1
    return added
