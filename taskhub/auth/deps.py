from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskhub.auth.tokens import decode_access_token
from taskhub.db import get_context, get_db
from taskhub.errors import MissingCredential, PrincipalNotFound
from taskhub.models.user import User
from taskhub.rbac.perms import Principal

bearer = HTTPBearer(auto_error=False)

def _credential(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds is not None and creds.scheme.lower() == "bearer" and creds.credentials:
        return creds.credentials
    # cookie fallback for browser sessions
    return request.cookies.get("token") or None

def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    token = _credential(request, creds)
    if token is None:
        raise MissingCredential()

    user_id = decode_access_token(get_context(request).settings, token)

    # role comes from the live row, never from the token
    user = db.get(User, user_id)
    if user is None:
        raise PrincipalNotFound()
    return user

def get_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal(id=user.id, role=user.role)
