"""SQLAlchemy database models."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(100), nullable=False, unique=True)
    password = Column(String(255), nullable=False)  # salted hash
    avatar = Column(String(255), nullable=False, default="", server_default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    books = relationship(
        "BookModel", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True
    )


class BookModel(Base):
    __tablename__ = "books"
    __table_args__ = (
        Index("idx_books_search", "title", "author", "description", "tags"),
        Index("idx_books_user", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="", server_default="")
    filename = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False)
    cover_image = Column(String(500), nullable=False, default="", server_default="")
    tags = Column(Text, nullable=False, default="", server_default="")
    rating = Column(Float, nullable=False, default=0.0, server_default="0")
    rating_count = Column(Integer, nullable=False, default=0, server_default="0")
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    owner = relationship("UserModel", back_populates="books")
    ratings = relationship(
        "RatingModel", back_populates="book", cascade="all, delete-orphan", passive_deletes=True
    )


class RatingModel(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_ratings_user_book"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_range"),
        Index("idx_ratings_user_book", "user_id", "book_id"),
        Index("idx_ratings_book", "book_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    book = relationship("BookModel", back_populates="ratings")
