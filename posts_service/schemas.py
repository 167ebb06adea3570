from datetime import datetime
from typing import List
from pydantic import BaseModel


class PostCreate(BaseModel):
    text: str = ""


class CommentCreate(BaseModel):
    text: str = ""


class LikeOut(BaseModel):
    user_id: int

    class Config:
        from_attributes = True


class CommentOut(BaseModel):
    comment_id: int
    user_id: int
    text: str
    name: str
    avatar: str
    created_at: datetime

    class Config:
        from_attributes = True


class PostOut(BaseModel):
    post_id: int
    user_id: int
    text: str
    name: str
    avatar: str
    likes: List[LikeOut]
    comments: List[CommentOut]
    created_at: datetime

    class Config:
        from_attributes = True
