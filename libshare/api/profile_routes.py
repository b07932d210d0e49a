"""Profile routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from libshare.api.routes import read_upload
from libshare.api.templating import templates
from libshare.api.views import AccountFormView, ProfileView
from libshare.core.dependencies import (
    get_book_service,
    get_profile_service,
    get_viewer,
    require_session,
)
from libshare.domain.entities import Session, User
from libshare.domain.exceptions import InvalidPasswordError, StorageError
from libshare.domain.services import IBookService, IProfileService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["profile"])


@router.get("/profile")
async def profile(
    request: Request,
    session: Annotated[Session, Depends(require_session)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
    book_service: Annotated[IBookService, Depends(get_book_service)],
) -> Response:
    """The user's own books."""
    view = ProfileView(user=viewer, books=await book_service.books_of(session.user_id))
    return templates.TemplateResponse(request, "profile.html", {"view": view})


@router.get("/edit-profile")
async def edit_profile_page(
    request: Request,
    session: Annotated[Session, Depends(require_session)],
    viewer: Annotated[Optional[User], Depends(get_viewer)],
) -> Response:
    if viewer is None:
        return PlainTextResponse("User not found", status_code=status.HTTP_404_NOT_FOUND)
    return templates.TemplateResponse(
        request, "edit_profile.html", {"view": AccountFormView(user=viewer)}
    )


@router.post("/update-profile")
async def update_profile(
    session: Annotated[Session, Depends(require_session)],
    profile_service: Annotated[IProfileService, Depends(get_profile_service)],
    username: Annotated[str, Form(max_length=50)] = "",
    email: Annotated[str, Form(max_length=100)] = "",
    current_password: Annotated[str, Form()] = "",
    new_password: Annotated[str, Form()] = "",
    avatar: Annotated[Optional[UploadFile], File()] = None,
) -> Response:
    try:
        avatar_content, avatar_filename = await read_upload(avatar)
        await profile_service.update_profile(
            session.user_id,
            username=username.strip(),
            email=email.strip(),
            current_password=current_password,
            new_password=new_password,
            avatar_content=avatar_content,
            avatar_filename=avatar_filename,
        )
    except InvalidPasswordError as e:
        logger.error("Invalid current password for user %s: %s", session.user_id, e)
        return PlainTextResponse("Invalid current password", status_code=status.HTTP_400_BAD_REQUEST)
    except StorageError as e:
        logger.error("Update profile error: %s", e)
        return PlainTextResponse("Failed to update profile", status_code=status.HTTP_400_BAD_REQUEST)
    return RedirectResponse("/profile", status_code=status.HTTP_302_FOUND)
