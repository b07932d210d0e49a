"""Book routes: catalog, search, reading, upload, editing, rating."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from libshare.api.templating import templates
from libshare.api.views import AccountFormView, BookDetailView, CatalogView, EditBookView, ReadBookView
from libshare.core.config import settings
from libshare.core.dependencies import (
    get_book_service,
    get_optional_session,
    get_viewer,
    require_session,
)
from libshare.domain.entities import BookMetadata, Session, User
from libshare.domain.exceptions import BookNotFoundError, ValidationError
from libshare.domain.services import IBookService
from libshare.services.formats import extension, is_editable_format

logger = logging.getLogger(__name__)
router = APIRouter(tags=["books"])


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


async def read_upload(upload: Optional[UploadFile]) -> tuple[Optional[bytes], Optional[str]]:
    """Read an optional file field; browsers send an empty part when nothing was chosen.

    The size recorded by the multipart parser is checked before the body is
    pulled into memory.
    """
    if upload is None or not upload.filename:
        return None, None
    if upload.size is not None and upload.size > settings.max_upload_bytes:
        raise ValidationError("File too large")
    content = await upload.read()
    if len(content) > settings.max_upload_bytes:
        raise ValidationError("File too large")
    return content, upload.filename


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
@router.get("/")
async def index(
    request: Request,
    book_service: Annotated[IBookService, Depends(get_book_service)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    """Latest uploads."""
    view = CatalogView(
        books=await book_service.latest(settings.latest_books_limit),
        user=viewer,
        popular_tags=await book_service.popular_tags(settings.popular_tags_limit),
    )
    return templates.TemplateResponse(request, "index.html", {"view": view})


@router.get("/search")
async def search(
    request: Request,
    book_service: Annotated[IBookService, Depends(get_book_service)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
    q: str = "",
    tags: str = "",
    sort: str = "",
) -> Response:
    """Search by text and tags, e.g. ``/search?q=dune&tags=sci-fi,drama&sort=rating``."""
    tag_list = [tag.strip() for tag in tags.split(",") if tag.strip()]
    view = CatalogView(
        books=await book_service.search(q, tag_list, sort),
        user=viewer,
        query=q,
        tags=tag_list,
        sort_by=sort,
        popular_tags=await book_service.popular_tags(settings.popular_tags_limit),
    )
    return templates.TemplateResponse(request, "index.html", {"view": view})


@router.get("/books/{book_id}")
async def book_detail(
    book_id: int,
    request: Request,
    book_service: Annotated[IBookService, Depends(get_book_service)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    book = await book_service.get_book(book_id, viewer.id if viewer else None)
    if book is None:
        raise BookNotFoundError(f"Book {book_id} not found")
    view = BookDetailView(book=book, user=viewer, user_rating=book.user_rating)
    return templates.TemplateResponse(request, "book_detail.html", {"view": view})


@router.get("/books/{book_id}/read")
async def read_book(
    book_id: int,
    request: Request,
    book_service: Annotated[IBookService, Depends(get_book_service)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    book, content = await book_service.read_book(book_id)
    view = ReadBookView(
        book=book,
        ext=extension(book.filename),
        content=content,
        is_editable=content is not None and is_editable_format(book.filename),
        user=viewer,
    )
    return templates.TemplateResponse(request, "read_book.html", {"view": view})


@router.post("/books/{book_id}/rate")
async def rate_book(
    book_id: int,
    book_service: Annotated[IBookService, Depends(get_book_service)],
    session: Annotated[Optional[Session], Depends(get_optional_session)],
    rating: Annotated[str, Form()] = "",
) -> Response:
    if session is None:
        return PlainTextResponse("Not authorized", status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        value = int(rating)
    except ValueError:
        return PlainTextResponse("Invalid rating", status_code=status.HTTP_400_BAD_REQUEST)
    if not 1 <= value <= 5:
        return PlainTextResponse("Invalid rating", status_code=status.HTTP_400_BAD_REQUEST)

    await book_service.rate(session.user_id, book_id, value)
    return _redirect(f"/books/{book_id}")


# ---------------------------------------------------------------------------
# Owner actions (login required)
# ---------------------------------------------------------------------------
@router.get("/upload")
async def upload_page(
    request: Request,
    session: Annotated[Session, Depends(require_session)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    return templates.TemplateResponse(request, "upload.html", {"view": AccountFormView(user=viewer)})


@router.post("/upload")
async def upload_book(
    session: Annotated[Session, Depends(require_session)],
    book_service: Annotated[IBookService, Depends(get_book_service)],
    book_file: Annotated[UploadFile, File()],
    title: Annotated[str, Form(min_length=1, max_length=255)],
    author: Annotated[str, Form(min_length=1, max_length=255)],
    description: Annotated[str, Form()] = "",
    tags: Annotated[str, Form()] = "",
    cover_image: Annotated[Optional[UploadFile], File()] = None,
) -> Response:
    """Store an uploaded book file with its metadata and optional cover."""
    file_content, filename = await read_upload(book_file)
    if file_content is None:
        return PlainTextResponse("Invalid file", status_code=status.HTTP_400_BAD_REQUEST)
    cover_content, cover_filename = await read_upload(cover_image)

    await book_service.upload_book(
        user_id=session.user_id,
        file_content=file_content,
        filename=filename,
        metadata=BookMetadata(title=title, author=author, description=description, tags=tags),
        cover_content=cover_content,
        cover_filename=cover_filename,
    )
    return _redirect("/profile")


@router.get("/books/{book_id}/edit")
async def edit_book_page(
    book_id: int,
    request: Request,
    session: Annotated[Session, Depends(require_session)],
    book_service: Annotated[IBookService, Depends(get_book_service)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    book, content = await book_service.editable_book(book_id, session.user_id)
    view = EditBookView(
        book=book,
        user=viewer,
        content=content or "",
        can_edit_content=content is not None,
    )
    return templates.TemplateResponse(request, "edit_book.html", {"view": view})


@router.post("/books/{book_id}/update")
async def update_book(
    book_id: int,
    session: Annotated[Session, Depends(require_session)],
    book_service: Annotated[IBookService, Depends(get_book_service)],
    title: Annotated[str, Form(min_length=1, max_length=255)],
    author: Annotated[str, Form(min_length=1, max_length=255)],
    description: Annotated[str, Form()] = "",
    tags: Annotated[str, Form()] = "",
    content: Annotated[str, Form()] = "",
) -> Response:
    await book_service.edit_book(
        book_id,
        session.user_id,
        BookMetadata(title=title, author=author, description=description, tags=tags),
        content=content,
    )
    return _redirect(f"/books/{book_id}")


@router.post("/books/{book_id}/delete")
async def delete_book(
    book_id: int,
    session: Annotated[Session, Depends(require_session)],
    book_service: Annotated[IBookService, Depends(get_book_service)],
) -> Response:
    """Remove the book row, then its files."""
    await book_service.delete_book(book_id, session.user_id)
    return _redirect("/profile")
