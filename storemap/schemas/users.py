"""User administration schemas for API requests and responses"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class UserResponse(BaseModel):
    """Schema for user data response; image is a URL or a data URL"""
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: str
    created_at: datetime
    updated_at: datetime
    last_login: Optional[datetime] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int


class DeleteUsersRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class DeleteUsersResponse(BaseModel):
    success: bool = True
    deleted_count: int


class ProfileUpdateRequest(BaseModel):
    """
    Profile edit.

    Image precedence: delete_image, then image_blob, then image_url.
    image_blob is base64, with or without a data URL prefix.
    """
    username: Optional[str] = Field(None, min_length=2, max_length=255)
    image_url: Optional[str] = None
    image_blob: Optional[str] = None
    delete_image: bool = False


class SuccessResponse(BaseModel):
    success: bool = True
