import uuid
from datetime import timedelta

import jwt

from taskhub.config import Settings
from taskhub.errors import CredentialExpired, InvalidSignature
from taskhub.models.base import now_utc

def issue_access_token(settings: Settings, user_id: str | uuid.UUID) -> str:
    iat = now_utc()
    exp = iat + timedelta(minutes=settings.jwt_expires_minutes)
    payload = {
        "sub": str(user_id),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

def decode_access_token(settings: Settings, token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise CredentialExpired()
    except jwt.InvalidTokenError:
        raise InvalidSignature()

    try:
        return uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise InvalidSignature()
