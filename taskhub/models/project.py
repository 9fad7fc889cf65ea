import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, String, Table, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.models.base import Base, now_utc
from taskhub.models.enums import Priority, ProjectStatus, enum_values
from taskhub.models.user import User

project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
)

class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), index=True, nullable=False
    )

    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status", values_callable=enum_values),
        nullable=False,
        default=ProjectStatus.active,
        index=True,
    )
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority, name="priority", values_callable=enum_values),
        nullable=False,
        default=Priority.medium,
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    owner: Mapped[User] = relationship(lazy="joined")
    members: Mapped[list[User]] = relationship(secondary=project_members, lazy="selectin")
    tasks: Mapped[list["Task"]] = relationship(  # noqa: F821
        back_populates="project",
        cascade="all, delete-orphan",
    )

    @property
    def member_ids(self) -> frozenset[uuid.UUID]:
        return frozenset(m.id for m in self.members)
