"""Login, registration and logout routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from libshare.api.templating import templates
from libshare.api.views import AccountFormView
from libshare.core.dependencies import (
    get_auth_service,
    get_optional_session,
    get_session_manager,
    require_session,
)
from libshare.core.sessions import SessionManager
from libshare.domain.entities import Session
from libshare.domain.exceptions import InvalidPasswordError, StorageError, UserNotFoundError
from libshare.domain.services import IAuthService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


@router.get("/login")
async def login_page(
    request: Request,
    session: Annotated[Optional[Session], Depends(get_optional_session)],
) -> Response:
    if session is not None:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    return templates.TemplateResponse(request, "login.html", {"view": AccountFormView()})


@router.post("/login")
async def login(
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    auth_service: Annotated[IAuthService, Depends(get_auth_service)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Response:
    """Check credentials and start a session."""
    try:
        user = await auth_service.authorize(username, password)
    except (UserNotFoundError, InvalidPasswordError) as e:
        logger.error("Login error: %s", e)
        return PlainTextResponse("Invalid credentials", status_code=status.HTTP_401_UNAUTHORIZED)

    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    await sessions.create(response, user.id)
    return response


@router.get("/register")
async def register_page(
    request: Request,
    session: Annotated[Optional[Session], Depends(get_optional_session)],
) -> Response:
    if session is not None:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    return templates.TemplateResponse(request, "register.html", {"view": AccountFormView()})


@router.post("/register")
async def register(
    username: Annotated[str, Form(min_length=1, max_length=50)],
    email: Annotated[str, Form(min_length=3, max_length=100)],
    password: Annotated[str, Form(min_length=1)],
    auth_service: Annotated[IAuthService, Depends(get_auth_service)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Response:
    """Create the account and log the new user straight in."""
    try:
        user = await auth_service.register(username, email, password)
    except StorageError as e:
        logger.error("Register error: %s", e)
        return PlainTextResponse("Registration failed", status_code=status.HTTP_400_BAD_REQUEST)

    logger.info("User %s registered successfully", username)
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    await sessions.create(response, user.id)
    return response


@router.post("/logout")
async def logout(
    session: Annotated[Session, Depends(require_session)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Response:
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    await sessions.destroy(response, session)
    return response
