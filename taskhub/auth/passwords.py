import bcrypt

from taskhub.errors import ValidationError

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72

def hash_password(password: str, rounds: int = 12) -> str:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password cannot exceed 72 bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("ascii")

def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(raw, password_hash.encode("ascii"))
