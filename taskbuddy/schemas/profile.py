from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    website: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileRead(ProfileUpdate):
    id: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AvatarUploaded(BaseModel):
    avatar_url: str
