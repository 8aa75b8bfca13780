"""Identity endpoints: /auth/register, /auth/login, /auth/me, /auth/profile.

Register and login both return { accessToken, user } so the client can
keep the token in memory and go straight to its dashboard.  The token's
``roles`` claim is the user's marketplace role; that is all the workflow
engine ever sees of identity.
"""

from __future__ import annotations

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.dependencies import require_user
from app.core.errors import NotFoundError
from app.models.principal import Principal
from app.models.user import User
from app.repos.unit_of_work import unit_of_work
from app.services import auth_service, token_service, user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    password: str
    role: Literal["student", "instructor"] = "student"


class ProfileIn(BaseModel):
    name: str | None = None
    bio: str | None = None
    avatar: str | None = None


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    bio: str = ""
    avatar: str = ""


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        bio=user.bio,
        avatar=user.avatar,
    )


def _issue(user: User) -> AuthResponse:
    token = token_service.create_access_token(sub=str(user.id), roles=[user.role])
    return AuthResponse(accessToken=token, user=_user_out(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn) -> AuthResponse:
    user = auth_service.register_user(
        unit_of_work,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )
    return _issue(user)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginIn) -> AuthResponse:
    email = payload.email.lower().strip()
    user = auth_service.authenticate_user(unit_of_work, email, payload.password)
    if user is None:
        logger.warning("Login failed email=%s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info("Login succeeded user_id=%s", user.id)
    return _issue(user)


@router.get("/me", response_model=UserOut)
def me(principal: Annotated[Principal, Depends(require_user)]) -> UserOut:
    with unit_of_work.reading():
        user = unit_of_work.users.get_by_id(principal.uid)
    if user is None:
        raise NotFoundError("User", principal.user_id)
    return _user_out(user)


@router.put("/profile", response_model=UserOut)
def update_profile(
    payload: ProfileIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> UserOut:
    """Partial update of the caller's own name, bio and avatar."""
    user = user_service.update_profile(
        unit_of_work,
        principal,
        name=payload.name,
        bio=payload.bio,
        avatar=payload.avatar,
    )
    return _user_out(user)
