import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_principal
from taskhub.db import get_db
from taskhub.errors import ConflictError, ValidationError
from taskhub.models.enums import Role
from taskhub.models.user import User
from taskhub.rbac.deps import authorize, load_user, require_roles, user_target
from taskhub.rbac.perms import Action, Principal
from taskhub.reports.stats import recent_activity, user_stats
from taskhub.schemas.common import DataOut, ListOut, MessageOut, UserBrief
from taskhub.schemas.users import (
    ActivityProject,
    ActivityTask,
    RecentActivity,
    RoleIn,
    StatusIn,
    UserDetailOut,
    UserOut,
    UserStatsOut,
    UserUpdateIn,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

@router.get("", response_model=ListOut[UserOut])
def list_users(
    role: Role | None = None,
    is_active: bool | None = Query(default=None, alias="isActive"),
    search: str | None = None,
    principal: Principal = Depends(require_roles(Role.admin, Role.manager)),
    db: Session = Depends(get_db),
) -> ListOut[UserOut]:
    authorize(principal, Action.list_users)

    q = select(User).order_by(User.created_at.desc())
    if role is not None:
        q = q.where(User.role == role)
    if is_active is not None:
        q = q.where(User.is_active == is_active)
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.where(or_(User.name.ilike(like), User.username.ilike(like), User.email.ilike(like)))

    rows = db.scalars(q).all()
    return ListOut(count=len(rows), data=[UserOut.model_validate(r) for r in rows])

# picker list for assignment dialogs; must stay above /{user_id}
@router.get("/simple", response_model=ListOut[UserBrief])
def list_users_simple(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> ListOut[UserBrief]:
    q = select(User).where(User.is_active.is_(True)).order_by(User.name)
    if principal.role == Role.developer:
        q = q.where(User.role.in_([Role.developer, Role.manager]))

    rows = db.scalars(q).all()
    return ListOut(count=len(rows), data=[UserBrief.model_validate(r) for r in rows])

@router.get("/{user_id}", response_model=DataOut[UserDetailOut])
def get_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[UserDetailOut]:
    user = load_user(db, user_id)
    authorize(principal, Action.view_user, user)

    out = UserDetailOut.model_validate(user)
    if user.id == principal.id:
        activity = recent_activity(db, user)
        out.recent_activity = RecentActivity(
            tasks=[ActivityTask.model_validate(t) for t in activity["tasks"]],
            projects=[ActivityProject.model_validate(p) for p in activity["projects"]],
        )
    return DataOut(data=out)

@router.put("/{user_id}", response_model=DataOut[UserOut])
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdateIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[UserOut]:
    user = load_user(db, user_id)
    authorize(principal, Action.update_user, user)
    if payload.password is not None:
        raise ValidationError("Passwords are changed through /auth/change-password")

    if payload.role is not None and payload.role != user.role:
        authorize(principal, Action.change_role, user)

    username = payload.username.strip() if payload.username else None
    email = payload.email.lower().strip() if payload.email else None
    for field, column, value in (("Username", User.username, username), ("Email", User.email, email)):
        if value is None:
            continue
        clash = db.scalar(select(User.id).where(column == value, User.id != user.id).limit(1))
        if clash is not None:
            raise ConflictError(f"{field} already exists")

    if username:
        user.username = username
    if payload.name:
        user.name = payload.name.strip()
    if email:
        user.email = email
    if payload.avatar is not None:
        user.avatar = payload.avatar.strip() or None
    if payload.role is not None:
        user.role = payload.role

    db.commit()
    db.refresh(user)
    logger.info("%s updated user %s", principal.role.value, user.username)
    return DataOut(message="User updated successfully", data=UserOut.model_validate(user))

@router.delete("/{user_id}", response_model=MessageOut)
def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> MessageOut:
    user = load_user(db, user_id)
    authorize(principal, Action.delete_user, user_target(db, user))

    username = user.username
    db.delete(user)
    db.commit()
    logger.info("%s deleted user %s", principal.role.value, username)
    return MessageOut(message="User deleted successfully")

@router.patch("/{user_id}/role", response_model=DataOut[UserOut])
def change_role(
    user_id: uuid.UUID,
    payload: RoleIn,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> DataOut[UserOut]:
    try:
        role = Role(payload.role)
    except ValueError:
        raise ValidationError("Invalid role. Must be: Admin, Manager, or Developer")

    user = load_user(db, user_id)
    authorize(principal, Action.change_role, user)

    old = user.role
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("role of %s changed %s -> %s", user.username, old.value, role.value)
    return DataOut(message="User role updated successfully", data=UserOut.model_validate(user))

@router.patch("/{user_id}/status", response_model=DataOut[UserOut])
def set_status(
    user_id: uuid.UUID,
    payload: StatusIn,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> DataOut[UserOut]:
    user = load_user(db, user_id)
    authorize(principal, Action.set_user_status, user)

    user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    state = "activated" if user.is_active else "deactivated"
    logger.info("user %s %s", user.username, state)
    return DataOut(message=f"User {state} successfully", data=UserOut.model_validate(user))

@router.get("/{user_id}/stats", response_model=DataOut[UserStatsOut])
def get_user_stats(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[UserStatsOut]:
    user = load_user(db, user_id)
    authorize(principal, Action.view_user, user)
    return DataOut(data=UserStatsOut(**user_stats(db, user)))
