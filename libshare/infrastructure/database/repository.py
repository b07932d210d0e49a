"""Repository implementations."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from libshare.domain.entities import Book, User
from libshare.domain.exceptions import BookNotFoundError, StorageError, ValidationError
from libshare.domain.repositories import IBookRepository, IUserRepository
from libshare.infrastructure.database.models import BookModel, RatingModel, UserModel

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "rating": (BookModel.rating.desc(), BookModel.created_at.desc()),
    "newest": (BookModel.created_at.desc(),),
    "popular": (BookModel.rating_count.desc(), BookModel.rating.desc()),
}
DEFAULT_SORT = SORT_ORDERS["newest"]


async def _commit_write(session: AsyncSession, stmt) -> int:
    """Execute a single write statement in its own commit; return rows affected."""
    try:
        result = await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Write failed: %s", exc)
        raise StorageError(str(exc)) from exc
    return result.rowcount


# ---------------------------------------------------------------------------
# User Repository
# ---------------------------------------------------------------------------
class UserRepository(IUserRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        db_user = UserModel(
            username=user.username,
            email=user.email,
            password=user.password_hash,
            avatar=user.avatar,
            created_at=user.created_at,
        )
        self.session.add(db_user)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError(str(exc)) from exc
        await self.session.refresh(db_user)
        return self._to_entity(db_user)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(
            select(
                UserModel.id,
                UserModel.username,
                UserModel.email,
                UserModel.avatar,
                UserModel.created_at,
            ).where(UserModel.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return User(
            id=row.id,
            username=row.username,
            email=row.email,
            avatar=row.avatar or "",
            created_at=row.created_at,
        )

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.username == username)
            .execution_options(populate_existing=True)
        )
        db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def get_password_hash(self, user_id: int) -> Optional[str]:
        return await self.session.scalar(select(UserModel.password).where(UserModel.id == user_id))

    async def update_username(self, user_id: int, username: str) -> None:
        await self._update(user_id, username=username)

    async def update_email(self, user_id: int, email: str) -> None:
        await self._update(user_id, email=email)

    async def update_password(self, user_id: int, password_hash: str) -> None:
        await self._update(user_id, password=password_hash)

    async def update_avatar(self, user_id: int, avatar_path: str) -> None:
        await self._update(user_id, avatar=avatar_path)

    async def _update(self, user_id: int, **values) -> None:
        await _commit_write(
            self.session,
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False),
        )

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            password_hash=model.password,
            avatar=model.avatar or "",
            created_at=model.created_at,
        )


# ---------------------------------------------------------------------------
# Book Repository
# ---------------------------------------------------------------------------
class BookRepository(IBookRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, book: Book) -> int:
        db_book = BookModel(
            title=book.title,
            author=book.author,
            description=book.description,
            filename=book.filename,
            file_path=book.file_path,
            file_size=book.file_size,
            cover_image=book.cover_image,
            tags=book.tags,
            user_id=book.user_id,
            created_at=book.created_at,
        )
        self.session.add(db_book)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError(str(exc)) from exc
        return db_book.id

    async def get_by_id(self, book_id: int) -> Optional[Book]:
        result = await self.session.execute(self._with_owner().where(BookModel.id == book_id))
        row = result.one_or_none()
        return self._to_entity(*row) if row else None

    async def get_by_id_with_user_rating(self, book_id: int, user_id: int) -> Optional[Book]:
        stmt = (
            select(BookModel, UserModel.username, func.coalesce(RatingModel.rating, 0))
            .join(UserModel, BookModel.user_id == UserModel.id)
            .outerjoin(
                RatingModel,
                (RatingModel.book_id == BookModel.id) & (RatingModel.user_id == user_id),
            )
            .where(BookModel.id == book_id)
            .execution_options(populate_existing=True)
        )
        row = (await self.session.execute(stmt)).one_or_none()
        return self._to_entity(*row) if row else None

    async def get_latest(self, limit: int) -> list[Book]:
        stmt = self._with_owner().order_by(*DEFAULT_SORT, BookModel.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_entity(*row) for row in result.all()]

    async def get_by_user_id(self, user_id: int) -> list[Book]:
        stmt = (
            self._with_owner()
            .where(BookModel.user_id == user_id)
            .order_by(*DEFAULT_SORT, BookModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(*row) for row in result.all()]

    async def search(self, query: str, tags: list[str], sort_by: str) -> list[Book]:
        stmt = self._with_owner()
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    BookModel.title.ilike(pattern),
                    BookModel.author.ilike(pattern),
                    BookModel.description.ilike(pattern),
                    BookModel.tags.ilike(pattern),
                )
            )
        # Substring match over the comma-joined field: "art" also hits "cart".
        tag_terms = [tag.strip() for tag in tags if tag.strip()]
        if tag_terms:
            stmt = stmt.where(or_(*(BookModel.tags.ilike(f"%{tag}%") for tag in tag_terms)))

        stmt = stmt.order_by(*SORT_ORDERS.get(sort_by, DEFAULT_SORT), BookModel.id.desc())
        result = await self.session.execute(stmt)
        return [self._to_entity(*row) for row in result.all()]

    async def get_popular_tags(self, limit: int) -> list[str]:
        if limit <= 0:
            return []
        result = await self.session.execute(
            select(BookModel.tags).where(BookModel.tags != "").order_by(BookModel.id)
        )
        seen: dict[str, None] = {}
        for (tags,) in result.all():
            for tag in tags.split(","):
                tag = tag.strip()
                if tag and tag not in seen:
                    seen[tag] = None
                    if len(seen) >= limit:
                        return list(seen)
        return list(seen)

    async def update(
        self, book_id: int, user_id: int,
        title: str, author: str, description: str, tags: str,
    ) -> bool:
        rows = await _commit_write(
            self.session,
            update(BookModel)
            .where(BookModel.id == book_id, BookModel.user_id == user_id)
            .values(title=title, author=author, description=description, tags=tags)
            .execution_options(synchronize_session=False),
        )
        return rows > 0

    async def delete(self, book_id: int, user_id: int) -> bool:
        rows = await _commit_write(
            self.session,
            delete(BookModel)
            .where(BookModel.id == book_id, BookModel.user_id == user_id)
            .execution_options(synchronize_session=False),
        )
        return rows > 0

    async def rate_book(self, user_id: int, book_id: int, rating: int) -> None:
        if not 1 <= rating <= 5:
            raise ValidationError(f"rating must be between 1 and 5, got {rating}")

        avg_rating = (
            select(func.avg(RatingModel.rating)).where(RatingModel.book_id == book_id).scalar_subquery()
        )
        rating_count = (
            select(func.count(RatingModel.id)).where(RatingModel.book_id == book_id).scalar_subquery()
        )
        # Upsert and aggregate recompute commit together or not at all.
        try:
            exists = await self.session.scalar(select(BookModel.id).where(BookModel.id == book_id))
            if exists is None:
                raise BookNotFoundError(f"Book {book_id} not found")
            await self.session.execute(self._rating_upsert(user_id, book_id, rating))
            await self.session.execute(
                update(BookModel)
                .where(BookModel.id == book_id)
                .values(rating=func.coalesce(avg_rating, 0), rating_count=rating_count)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except BookNotFoundError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Rating transaction rolled back for book %s: %s", book_id, exc)
            raise StorageError(str(exc)) from exc

    async def get_user_rating(self, user_id: int, book_id: int) -> int:
        rating = await self.session.scalar(
            select(RatingModel.rating).where(
                RatingModel.user_id == user_id,
                RatingModel.book_id == book_id,
            )
        )
        return rating or 0

    def _rating_upsert(self, user_id: int, book_id: int, rating: int):
        dialect = self.session.get_bind().dialect.name
        insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(RatingModel).values(
            user_id=user_id,
            book_id=book_id,
            rating=rating,
            created_at=datetime.utcnow(),
        )
        return stmt.on_conflict_do_update(
            index_elements=["user_id", "book_id"],
            set_={"rating": stmt.excluded.rating, "created_at": stmt.excluded.created_at},
        )

    @staticmethod
    def _with_owner():
        return (
            select(BookModel, UserModel.username)
            .join(UserModel, BookModel.user_id == UserModel.id)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _to_entity(model: BookModel, username: str = "", user_rating: int = 0) -> Book:
        return Book(
            id=model.id,
            title=model.title,
            author=model.author,
            description=model.description or "",
            filename=model.filename,
            file_path=model.file_path,
            file_size=model.file_size,
            user_id=model.user_id,
            cover_image=model.cover_image or "",
            tags=model.tags or "",
            rating=float(model.rating or 0.0),
            rating_count=model.rating_count or 0,
            username=username,
            user_rating=user_rating or 0,
            created_at=model.created_at,
        )
