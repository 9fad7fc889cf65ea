from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

# sqlite hands back naive datetimes even for timezone=True columns
def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
