from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_current_user
from taskhub.auth.passwords import hash_password, verify_password
from taskhub.auth.tokens import issue_access_token
from taskhub.context import AppContext
from taskhub.db import get_context, get_db
from taskhub.errors import AuthenticationError, ConflictError, ValidationError
from taskhub.models.enums import Role
from taskhub.models.user import User
from taskhub.ratelimit import rate_limit
from taskhub.schemas.auth import AuthOut, ChangePasswordIn, LoginIn, ProfileIn, RegisterIn
from taskhub.schemas.common import DataOut, MessageOut, UserBrief
from taskhub.schemas.users import UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _taken(db: Session, user: User | None, *, username: str | None, email: str | None) -> bool:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return False
    q = select(User.id).where(or_(*clauses))
    if user is not None:
        q = q.where(User.id != user.id)
    return db.scalar(q.limit(1)) is not None

@router.post("/register", response_model=DataOut[AuthOut], status_code=201)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    _: None = Depends(rate_limit("auth:register", "rate_limit_auth_register_per_min")),
) -> DataOut[AuthOut]:
    username = payload.username.strip()
    email = payload.email.lower().strip()

    if _taken(db, None, username=username, email=email):
        raise ConflictError("User with this email or username already exists")

    user = User(
        username=username,
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password, ctx.settings.bcrypt_rounds),
        role=Role.developer,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user %s as %s", user.username, user.role.value)

    return DataOut(
        message="User registered successfully",
        data=AuthOut(
            token=issue_access_token(ctx.settings, user.id),
            user=UserBrief.model_validate(user),
        ),
    )

@router.post("/login", response_model=DataOut[AuthOut])
def login(
    payload: LoginIn,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    _: None = Depends(rate_limit("auth:login", "rate_limit_auth_login_per_min")),
) -> DataOut[AuthOut]:
    user = db.scalar(select(User).where(User.email == payload.email.lower().strip()))
    if user is None or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return DataOut(
        message="Login successful",
        data=AuthOut(
            token=issue_access_token(ctx.settings, user.id),
            user=UserBrief.model_validate(user),
        ),
    )

@router.get("/me", response_model=DataOut[UserOut])
def me(user: User = Depends(get_current_user)) -> DataOut[UserOut]:
    return DataOut(data=UserOut.model_validate(user))

@router.put("/profile", response_model=DataOut[UserOut])
def update_profile(
    payload: ProfileIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DataOut[UserOut]:
    username = payload.username.strip() if payload.username else None
    email = payload.email.lower().strip() if payload.email else None

    if _taken(db, user, username=username, email=email):
        raise ConflictError("Username or email already exists")

    if username:
        user.username = username
    if payload.name:
        user.name = payload.name.strip()
    if email:
        user.email = email

    db.commit()
    db.refresh(user)
    return DataOut(message="Profile updated successfully", data=UserOut.model_validate(user))

@router.put("/change-password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> MessageOut:
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(payload.new_password, ctx.settings.bcrypt_rounds)
    db.commit()
    return MessageOut(message="Password changed successfully")

# tokens are stateless; the client drops its copy
@router.post("/logout", response_model=MessageOut)
def logout(user: User = Depends(get_current_user)) -> MessageOut:
    return MessageOut(message="Logged out successfully. Please remove token from client.")
