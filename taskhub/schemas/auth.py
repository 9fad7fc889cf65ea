from pydantic import EmailStr, Field

from taskhub.schemas.common import CamelModel, UserBrief

class RegisterIn(CamelModel):
    username: str = Field(min_length=3, max_length=30)
    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

class AuthOut(CamelModel):
    token: str
    user: UserBrief

class ProfileIn(CamelModel):
    username: str | None = Field(default=None, min_length=3, max_length=30)
    name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None

class ChangePasswordIn(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=72)
