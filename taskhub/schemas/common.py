import uuid
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from taskhub.models.enums import Role

T = TypeVar("T")

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class DataOut(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T

class ListOut(CamelModel, Generic[T]):
    success: bool = True
    count: int
    data: list[T]
    user_role: Role | None = None

class MessageOut(CamelModel):
    success: bool = True
    message: str

class UserBrief(CamelModel):
    id: uuid.UUID
    username: str
    name: str
    email: str
    role: Role

class UserIdIn(CamelModel):
    user_id: uuid.UUID
