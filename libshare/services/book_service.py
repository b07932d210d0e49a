"""Book service with business logic."""

import logging
from datetime import datetime
from typing import Optional

from libshare.domain.entities import Book, BookMetadata
from libshare.domain.exceptions import BookNotFoundError, PermissionDeniedError, ValidationError
from libshare.domain.repositories import IBookRepository, IStorageService
from libshare.domain.services import IBookService
from libshare.services.formats import is_editable_format, is_text_file, safe_filename

logger = logging.getLogger(__name__)

UPLOAD_DIR = "uploads"
COVER_DIR = "images"
UNREADABLE_CONTENT = "Could not load the book content."


class BookService(IBookService):
    """Coordinates the book files on disk with the book rows.

    Files and rows are not written in one transaction. A file created for a
    row that then fails to insert is deleted again; a path that already
    existed (same user, same file name) may still back an earlier row, so it
    keeps the new content instead. A deleted row has its files removed
    afterwards, so a crash in between leaves an orphaned file.
    """

    def __init__(
        self,
        book_repository: IBookRepository,
        storage_service: IStorageService,
        max_upload_bytes: int,
    ):
        self.book_repository = book_repository
        self.storage_service = storage_service
        self.max_upload_bytes = max_upload_bytes

    async def upload_book(
        self,
        user_id: int,
        file_content: bytes,
        filename: str,
        metadata: BookMetadata,
        cover_content: Optional[bytes] = None,
        cover_filename: Optional[str] = None,
    ) -> int:
        name = safe_filename(filename or "")
        if not name:
            raise ValidationError("File is required")
        if not file_content:
            raise ValidationError("File is empty")
        if len(file_content) > self.max_upload_bytes:
            raise ValidationError("File too large")
        if cover_content and len(cover_content) > self.max_upload_bytes:
            raise ValidationError("File too large")

        written: list[str] = []
        file_path = await self._save(file_content, f"{UPLOAD_DIR}/{user_id}_{name}", written)

        cover_path = ""
        if cover_content and cover_filename:
            cover_name = safe_filename(cover_filename)
            try:
                cover_path = await self._save(
                    cover_content, f"{COVER_DIR}/cover_{user_id}_{cover_name}", written
                )
            except OSError as exc:
                # The book itself is still usable without its cover.
                logger.error("Save cover image error: %s", exc)

        book = Book(
            id=None,
            title=metadata.title,
            author=metadata.author,
            description=metadata.description,
            filename=name,
            file_path=file_path,
            file_size=len(file_content),
            user_id=user_id,
            cover_image=cover_path,
            tags=metadata.tags,
            created_at=datetime.utcnow(),
        )
        try:
            book_id = await self.book_repository.create(book)
        except Exception:
            logger.error("Create book record failed, removing %s", written)
            for path in written:
                await self.storage_service.delete_file(path)
            raise

        logger.info("Book %s uploaded by user %s: %s", book_id, user_id, name)
        return book_id

    async def get_book(self, book_id: int, viewer_id: Optional[int] = None) -> Optional[Book]:
        if viewer_id is None:
            return await self.book_repository.get_by_id(book_id)
        return await self.book_repository.get_by_id_with_user_rating(book_id, viewer_id)

    async def latest(self, limit: int) -> list[Book]:
        return await self.book_repository.get_latest(limit)

    async def books_of(self, user_id: int) -> list[Book]:
        return await self.book_repository.get_by_user_id(user_id)

    async def search(self, query: str, tags: list[str], sort_by: str) -> list[Book]:
        return await self.book_repository.search(query, tags, sort_by)

    async def popular_tags(self, limit: int) -> list[str]:
        return await self.book_repository.get_popular_tags(limit)

    async def read_book(self, book_id: int) -> tuple[Book, Optional[str]]:
        """Return the book and, for text formats, its content."""
        book = await self._require_book(book_id)
        if not is_text_file(book.filename):
            return book, None
        return book, await self._load_text(book)

    async def editable_book(self, book_id: int, user_id: int) -> tuple[Book, Optional[str]]:
        book = await self._require_owned(book_id, user_id)
        if not is_editable_format(book.filename):
            return book, None
        return book, await self._load_text(book, fallback="")

    async def edit_book(
        self, book_id: int, user_id: int, metadata: BookMetadata, content: str = ""
    ) -> None:
        book = await self._require_owned(book_id, user_id)
        if content and is_editable_format(book.filename):
            await self.storage_service.save_file(content.encode("utf-8"), book.file_path)
        updated = await self.book_repository.update(
            book_id, user_id,
            metadata.title, metadata.author, metadata.description, metadata.tags,
        )
        if not updated:
            raise BookNotFoundError(f"Book {book_id} not found")
        logger.info("Book %s updated by user %s", book_id, user_id)

    async def delete_book(self, book_id: int, user_id: int) -> None:
        book = await self._require_owned(book_id, user_id)
        if not await self.book_repository.delete(book_id, user_id):
            raise BookNotFoundError(f"Book {book_id} not found")
        for path in (book.file_path, book.cover_image):
            if path:
                await self.storage_service.delete_file(path)
        logger.info("Book deleted: %s", book_id)

    async def rate(self, user_id: int, book_id: int, rating: int) -> None:
        await self.book_repository.rate_book(user_id, book_id, rating)
        logger.info("User %s rated book %s: %s", user_id, book_id, rating)

    async def user_rating(self, user_id: int, book_id: int) -> int:
        return await self.book_repository.get_user_rating(user_id, book_id)

    async def _save(self, content: bytes, file_path: str, written: list[str]) -> str:
        """Save ``content`` and record ``file_path`` in ``written`` if it is new."""
        existed = await self.storage_service.exists(file_path)
        saved = await self.storage_service.save_file(content, file_path)
        if not existed:
            written.append(saved)
        return saved

    async def _require_book(self, book_id: int) -> Book:
        book = await self.book_repository.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(f"Book {book_id} not found")
        return book

    async def _require_owned(self, book_id: int, user_id: int) -> Book:
        book = await self._require_book(book_id)
        if book.user_id != user_id:
            raise PermissionDeniedError(f"Book {book_id} is not owned by user {user_id}")
        return book

    async def _load_text(self, book: Book, fallback: str = UNREADABLE_CONTENT) -> str:
        try:
            content = await self.storage_service.get_file(book.file_path)
        except OSError as exc:
            logger.error("Read book file error: %s", exc)
            return fallback
        return content.decode("utf-8", errors="replace")
