from collections.abc import Generator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.context import AppContext

def get_context(request: Request) -> AppContext:
    return request.app.state.ctx

def get_db(request: Request) -> Generator[Session, None, None]:
    db = get_context(request).session_factory()
    try:
        yield db
    finally:
        db.close()

# db connectivity check
def db_ping(ctx: AppContext) -> bool:
    try:
        with ctx.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False

# redis connectivity check
def redis_ping(ctx: AppContext) -> bool:
    try:
        return bool(ctx.redis.ping())
    except Exception:
        return False
