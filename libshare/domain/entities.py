"""Domain entities for LibShare."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class User:
    id: Optional[int]
    username: str
    email: str
    password_hash: Optional[str] = None  # not loaded by id lookups
    avatar: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class Book:
    id: Optional[int]
    title: str
    author: str
    description: str
    filename: str
    file_path: str
    file_size: int
    user_id: int
    cover_image: str = ""
    tags: str = ""  # comma-separated
    rating: float = 0.0
    rating_count: int = 0
    username: str = ""  # owner, filled by joined reads
    user_rating: int = 0  # viewer's own rating, 0 when unrated
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]


@dataclass(frozen=True)
class Session:
    """Server-held binding of an opaque token to a user.

    Sessions are only ever created and deleted, never mutated in place.
    """

    id: str
    user_id: int
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class BookMetadata:
    """User-editable book fields submitted through the upload and edit forms."""

    title: str
    author: str
    description: str = ""
    tags: str = ""
