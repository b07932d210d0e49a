"""View models handed to the templates, one per page."""

from dataclasses import dataclass, field
from typing import Optional

from libshare.domain.entities import Book, User


@dataclass
class CatalogView:
    """Home page and search results."""

    books: list[Book]
    user: Optional[User] = None
    query: str = ""
    tags: list[str] = field(default_factory=list)
    sort_by: str = ""
    popular_tags: list[str] = field(default_factory=list)


@dataclass
class BookDetailView:
    book: Book
    user: Optional[User] = None
    user_rating: int = 0

    @property
    def is_owner(self) -> bool:
        return self.user is not None and self.user.id == self.book.user_id


@dataclass
class ReadBookView:
    book: Book
    ext: str
    content: Optional[str] = None
    is_editable: bool = False
    user: Optional[User] = None

    @property
    def can_edit(self) -> bool:
        return self.user is not None and self.user.id == self.book.user_id


@dataclass
class EditBookView:
    book: Book
    user: Optional[User]
    content: str = ""
    can_edit_content: bool = False


@dataclass
class ProfileView:
    user: Optional[User]
    books: list[Book] = field(default_factory=list)


@dataclass
class AccountFormView:
    """Login, register, upload and edit-profile forms."""

    user: Optional[User] = None
    error: str = ""
