"""
Persistent store for the gallery collection and the daily refresh marker.

Two keyed entries live in a single SQLAlchemy table:
the JSON array of videos and the ISO-8601 timestamp of the last
successful daily refresh. Each write is one transaction, so a failed
write leaves the previous value readable.
"""
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import Column, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from core import config
from core.errors import PersistenceReadError, PersistenceWriteError
from gallery.models import VideoArtifact, default_videos

logger = logging.getLogger(__name__)

VIDEOS_KEY = "veo-gallery-videos"
LAST_GEN_DATE_KEY = "veo-gallery-last-gen-date"

Base = declarative_base()

_videos_adapter = TypeAdapter(List[VideoArtifact])


class StoredEntry(Base):
    __tablename__ = "gallery_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


def decode_videos(raw: str) -> List[VideoArtifact]:
    """
    Parse a stored videos array.

    Entries without a payload are dropped.

    Raises:
        PersistenceReadError: Not JSON, not an array, or an entry without id/title
    """
    try:
        videos = _videos_adapter.validate_json(raw)
    except ValidationError as e:
        raise PersistenceReadError(f"Stored videos are malformed: {e.error_count()} error(s)") from e

    playable = [v for v in videos if v.video_url]
    if len(playable) != len(videos):
        logger.warning(f"Dropping {len(videos) - len(playable)} stored video(s) without a payload")
    return playable


def encode_videos(videos: List[VideoArtifact]) -> str:
    for video in videos:
        if not video.video_url:
            raise PersistenceWriteError(f"Video {video.id} has no payload")
    try:
        return json.dumps([v.model_dump() for v in videos])
    except (TypeError, ValueError) as e:
        raise PersistenceWriteError("Failed to serialize videos") from e


def decode_marker(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed refresh marker: {raw!r}")
        return None


class GalleryStore:
    """Key/value persistence for the gallery."""

    def __init__(self, db_url: str = config.GALLERY_DB_URL):
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        self.engine = create_engine(db_url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    def _read(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            entry = db.get(StoredEntry, key)
            return entry.value if entry else None

    def _write(self, entries: Dict[str, str]) -> None:
        """Write all entries in a single commit."""
        with self.SessionLocal() as db:
            try:
                for key, value in entries.items():
                    db.merge(StoredEntry(key=key, value=value))
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceWriteError(f"Failed to write {sorted(entries)}") from e

    def load(self) -> Tuple[List[VideoArtifact], Optional[datetime]]:
        """
        Return the stored videos and refresh marker.

        Missing or malformed videos fall back to the built-in defaults with
        no marker; nothing is raised to the caller.
        """
        try:
            raw_videos = self._read(VIDEOS_KEY)
            raw_marker = self._read(LAST_GEN_DATE_KEY)
        except SQLAlchemyError:
            logger.warning("Could not read gallery store. Starting fresh.", exc_info=True)
            return default_videos(), None

        if raw_videos is None:
            return default_videos(), None

        try:
            videos = decode_videos(raw_videos)
        except PersistenceReadError as e:
            logger.warning(f"Could not parse videos from store. Starting fresh. ({e})")
            return default_videos(), None

        return videos, decode_marker(raw_marker)

    def save(self, videos: List[VideoArtifact]) -> None:
        self._write({VIDEOS_KEY: encode_videos(videos)})

    def save_marker(self, timestamp: datetime) -> None:
        self._write({LAST_GEN_DATE_KEY: timestamp.isoformat()})

    def save_refresh(self, videos: List[VideoArtifact], timestamp: datetime) -> None:
        """Store a refreshed collection together with its marker."""
        self._write({
            VIDEOS_KEY: encode_videos(videos),
            LAST_GEN_DATE_KEY: timestamp.isoformat(),
        })
