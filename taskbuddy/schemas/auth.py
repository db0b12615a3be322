from pydantic import BaseModel
from typing import Any, Dict, Optional


class TokenData(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None


class SessionUser(BaseModel):
    """The authenticated identity every other component keys on."""
    id: str
    email: Optional[str] = None


class Identity(BaseModel):
    """User returned by the identity provider after a code exchange."""
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}

    @property
    def full_name(self) -> str:
        return self.user_metadata.get("full_name") or ""
