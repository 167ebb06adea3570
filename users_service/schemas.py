from datetime import datetime
from pydantic import BaseModel


# Request bodies default every field so that missing values reach the
# validation rules and come back as {field, message} errors.
class UserCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    password2: str | None = None


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    user_id: int
    name: str
    email: str
    avatar: str
    created_at: datetime

    class Config:
        from_attributes = True


class UserProfile(BaseModel):
    user_id: int
    name: str
    avatar: str

    class Config:
        from_attributes = True


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
