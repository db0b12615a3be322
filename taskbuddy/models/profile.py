from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional


class Profile(SQLModel, table=True):
    """Account profile, one per authenticated user.

    id is the identity provider's user id.
    """
    __tablename__ = "profiles"

    id: str = Field(primary_key=True)
    full_name: Optional[str] = None
    username: Optional[str] = Field(default=None, index=True)
    website: Optional[str] = None
    avatar_url: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
