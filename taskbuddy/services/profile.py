"""Profiles: read, upsert on sign-in, account settings, avatars."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session

from ..exceptions import NotOwnerError
from ..models import Profile
from ..storage import AVATARS_BUCKET, ObjectStorage, owned_by

logger = logging.getLogger(__name__)

_UNSET = object()


class ProfileService:
    def __init__(self, session: Session, storage: Optional[ObjectStorage] = None) -> None:
        self._session = session
        self._storage = storage

    def get_profile(self, user_id: str) -> Optional[Profile]:
        if not user_id:
            return None
        return self._session.get(Profile, user_id)

    def upsert_profile(
        self,
        user_id: str,
        *,
        full_name=_UNSET,
        username=_UNSET,
        website=_UNSET,
        avatar_url=_UNSET,
    ) -> Profile:
        """Insert or update; only the fields passed are written.

        An avatar_url must point into the user's own avatar directory.
        """
        if avatar_url is not _UNSET and avatar_url and not owned_by(user_id, avatar_url):
            raise NotOwnerError(f"Avatar {avatar_url} does not belong to {user_id}")

        profile = self._session.get(Profile, user_id)
        if profile is None:
            profile = Profile(id=user_id)
            self._session.add(profile)

        for name, value in (
            ("full_name", full_name),
            ("username", username),
            ("website", website),
            ("avatar_url", avatar_url),
        ):
            if value is not _UNSET:
                setattr(profile, name, value)
        profile.updated_at = datetime.now(timezone.utc)

        try:
            self._session.commit()
            self._session.refresh(profile)
        except Exception:
            self._session.rollback()
            raise
        logger.info("Profile upserted id=%s", user_id)
        return profile

    def ensure_on_sign_in(self, user_id: str, full_name: str) -> Optional[Profile]:
        """Upsert (id, full_name) after a code exchange. Errors are logged only."""
        try:
            return self.upsert_profile(user_id, full_name=full_name)
        except Exception:
            logger.exception("Error inserting profile id=%s", user_id)
            return None

    def upload_avatar(self, user_id: str, filename: str, content: bytes) -> str:
        """Store an avatar blob and return its path. The profile is not touched."""
        if self._storage is None:
            raise RuntimeError("No object storage configured")
        ext = filename.rsplit(".", 1)[-1]
        path = f"{user_id}/{secrets.token_hex(8)}.{ext}"
        return self._storage.upload(AVATARS_BUCKET, path, content)

    def avatar_bytes(self, user_id: str, path: Optional[str]) -> Optional[bytes]:
        """user_id's avatar blob, or None if there is none or it cannot be read."""
        if not path or self._storage is None:
            return None
        if not owned_by(user_id, path):
            logger.warning("Avatar path %s not owned by user=%s", path, user_id)
            return None
        try:
            return self._storage.download(AVATARS_BUCKET, path)
        except Exception:
            logger.exception("Error downloading image path=%s", path)
            return None
