import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.models.base import Base, now_utc
from taskhub.models.enums import TaskLogAction, enum_values
from taskhub.models.task import Task
from taskhub.models.user import User

# append-only; rows only go away with their task
class TaskLog(Base):
    __tablename__ = "task_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), index=True, nullable=False
    )
    action: Mapped[TaskLogAction] = mapped_column(
        Enum(TaskLogAction, name="task_log_action", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    field: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_value: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    changed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meta: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)

    task: Mapped[Task] = relationship(back_populates="logs")
    actor: Mapped[User | None] = relationship(lazy="joined")
