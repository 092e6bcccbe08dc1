from datetime import datetime
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field


# =========================
# USER
# =========================
class UserBase(BaseModel):
    username: str = Field(min_length=3, max_length=50)


class CreateUser(UserBase):
    password: str = Field(min_length=8)
    model_config = ConfigDict(from_attributes=True)


class UserLogin(BaseModel):
    username: str
    password: str


class UserResponse(UserBase):
    id: int
    gravatar: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =========================
# POST
# =========================
class PostBase(BaseModel):
    title: str = Field(min_length=1, max_length=250)
    body: str = Field(min_length=1)


class PostCreate(PostBase):
    tagname: str = Field(min_length=1, max_length=50)
    tag_description: Optional[str] = None


class NewPost(PostBase):
    """What the write coordinator needs: the payload plus its author."""

    user_id: int
    tagname: str


class PostSummary(BaseModel):
    """One row of the aggregate post query."""

    id: int
    user_id: int
    tag_id: int
    tagname: str
    username: str
    gravatar: str
    title: str
    body: str
    created_at: datetime
    updated_at: datetime
    views: int
    answer_count: int
    comment_count: int

    model_config = ConfigDict(from_attributes=True)


# =========================
# RESPONSE ENVELOPE
# =========================
class ResponseEnvelope(BaseModel):
    success: bool
    status: int
    message: str
    data: Optional[Any] = None
