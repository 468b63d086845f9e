"""
catalog/store.py -- SQLAlchemy-backed persistence layer for albums.

Uses SQLAlchemy Core (not ORM) so the dataclass in catalog/models.py remains
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. AlbumStore is the repository; _row_to_album
is the mapper. Route handlers never touch SQL directly.

List and nested fields (artists, labels, personal_note, connections, ...) are
stored as JSON text, one column each. Nothing queries inside them except the
duplicate check, which filters on the indexed title_normalized column first
and compares artist multisets in Python.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = AlbumStore(settings.database_url)
    album_id = store.create_album(Album(title="OK Computer", artists=["Radiohead"], owner_id=uid))
    mine = store.list_albums_by_owner(uid)
    store.update_album(album_id, tags=["90s"])
    store.close()
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Index, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from catalog.identity import normalize_artists, normalize_title
from catalog.models import Album

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_albums = Table(
    "albums",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(32), nullable=False),
    Column("title", String(500), nullable=False),
    Column("title_normalized", String(500), nullable=False),
    Column("artists", Text, nullable=False),  # JSON array
    Column("artists_normalized", Text, nullable=False),  # JSON array
    Column("format", String(30)),
    Column("release_date", String(10)),  # YYYY-MM-DD
    Column("labels", Text),  # JSON array
    Column("genres", Text),  # JSON array
    Column("tags", Text),  # JSON array
    Column("cover_art_url", Text),
    Column("cover_art_id", String(255)),
    Column("personal_note", Text),  # JSON object
    Column("dimensions", Text),  # JSON object
    Column("connections", Text),  # JSON array of objects
    Column("listening_context", Text),  # JSON object
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    # Lookup index for the duplicate check. Deliberately not UNIQUE: the
    # identity rule compares artist multisets, which a column constraint
    # cannot express.
    Index("ix_albums_owner_title", "owner_id", "title_normalized"),
)

_JSON_FIELDS: frozenset[str] = frozenset(
    {"artists", "labels", "genres", "tags", "personal_note", "dimensions", "connections", "listening_context"}
)

_MUTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "artists",
        "format",
        "release_date",
        "labels",
        "genres",
        "tags",
        "cover_art_url",
        "cover_art_id",
        "personal_note",
        "dimensions",
        "connections",
        "listening_context",
    }
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _dump(value) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load(raw: Optional[str], default):
    return json.loads(raw) if raw else default


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AlbumStore:
    """Repository for Album entities."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_album(self, album: Album) -> str:
        """Insert a new album and return its id.

        The normalized title/artists are derived here so every write path
        keeps them in step with the display values.
        """
        album_id = uuid.uuid4().hex
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _albums.insert().values(
                    id=album_id,
                    owner_id=album.owner_id,
                    title=album.title,
                    title_normalized=normalize_title(album.title),
                    artists=json.dumps(album.artists),
                    artists_normalized=json.dumps(normalize_artists(album.artists)),
                    format=album.format,
                    release_date=album.release_date,
                    labels=json.dumps(album.labels),
                    genres=json.dumps(album.genres),
                    tags=json.dumps(album.tags),
                    cover_art_url=album.cover_art_url,
                    cover_art_id=album.cover_art_id,
                    personal_note=json.dumps(album.personal_note),
                    dimensions=json.dumps(album.dimensions),
                    connections=json.dumps(album.connections),
                    listening_context=json.dumps(album.listening_context),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return album_id

    def get_album(self, album_id: str) -> Optional[Album]:
        with self.engine.connect() as conn:
            row = conn.execute(_albums.select().where(_albums.c.id == album_id)).fetchone()
        return _row_to_album(row) if row is not None else None

    def list_albums_by_owner(self, owner_id: str) -> list[Album]:
        """Return one owner's albums, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _albums.select().where(_albums.c.owner_id == owner_id).order_by(_albums.c.created_at.desc())
            ).fetchall()
        return [_row_to_album(r) for r in rows]

    def list_albums(self) -> list[Album]:
        """Return every album in the catalog, newest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_albums.select().order_by(_albums.c.created_at.desc())).fetchall()
        return [_row_to_album(r) for r in rows]

    def find_by_normalized_title(self, owner_id: str, title_normalized: str) -> list[Album]:
        """Return the owner's albums whose normalized title matches exactly."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _albums.select().where(
                    (_albums.c.owner_id == owner_id) & (_albums.c.title_normalized == title_normalized)
                )
            ).fetchall()
        return [_row_to_album(r) for r in rows]

    def update_album(self, album_id: str, **fields) -> bool:
        """Update mutable fields on an existing album.

        owner_id is not in the accepted set: ownership never changes after
        creation. Unknown keys raise ValueError. Writing title or artists also
        rewrites the matching normalized column.

        Returns True if a row was updated, False if album_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown album fields: {unknown!r}")
        values: dict = {}
        for key, value in fields.items():
            values[key] = _dump(value) if key in _JSON_FIELDS else value
        if "title" in fields:
            values["title_normalized"] = normalize_title(fields["title"])
        if "artists" in fields:
            values["artists_normalized"] = json.dumps(normalize_artists(fields["artists"]))
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_albums.update().where(_albums.c.id == album_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete_album(self, album_id: str) -> bool:
        """Delete an album. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_albums.delete().where(_albums.c.id == album_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_album(row) -> Album:
    return Album(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        artists=_load(row.artists, []),
        format=row.format,
        release_date=row.release_date,
        labels=_load(row.labels, []),
        genres=_load(row.genres, []),
        tags=_load(row.tags, []),
        cover_art_url=row.cover_art_url,
        cover_art_id=row.cover_art_id,
        personal_note=_load(row.personal_note, {}),
        dimensions=_load(row.dimensions, {}),
        connections=_load(row.connections, []),
        listening_context=_load(row.listening_context, {}),
        title_normalized=row.title_normalized,
        artists_normalized=_load(row.artists_normalized, []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
