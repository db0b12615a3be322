import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from ..dependencies import get_profile_service
from ..exceptions import NotOwnerError
from ..schemas.auth import SessionUser
from ..schemas.profile import AvatarUploaded, ProfileRead, ProfileUpdate
from ..security import get_current_user
from ..services.profile import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile")


@router.get("", response_model=ProfileRead)
def read_profile(
    current_user: SessionUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    profile = profiles.get_profile(current_user.id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("", response_model=ProfileRead)
def update_profile(
    payload: ProfileUpdate,
    current_user: SessionUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Account settings form. Only the fields sent are changed."""
    try:
        return profiles.upsert_profile(current_user.id, **payload.model_dump(exclude_unset=True))
    except NotOwnerError:
        raise HTTPException(status_code=403, detail="That avatar does not belong to you.")
    except Exception:
        logger.exception("Error updating profile id=%s", current_user.id)
        raise HTTPException(
            status_code=500,
            detail="There was an error updating your profile. Please try again.",
        )


@router.post("/avatar", response_model=AvatarUploaded)
def upload_avatar(
    file: UploadFile = File(...),
    current_user: SessionUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Store the image and point the profile at it."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="You must select an image to upload.")
    content = file.file.read()
    try:
        path = profiles.upload_avatar(current_user.id, file.filename, content)
        profiles.upsert_profile(current_user.id, avatar_url=path)
    except Exception:
        logger.exception("Error uploading avatar id=%s", current_user.id)
        raise HTTPException(status_code=500, detail="Error uploading avatar!")
    return AvatarUploaded(avatar_url=path)


@router.get("/avatar")
def download_avatar(
    current_user: SessionUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    profile = profiles.get_profile(current_user.id)
    data = profiles.avatar_bytes(current_user.id, profile.avatar_url if profile else None)
    if data is None:
        raise HTTPException(status_code=404, detail="Avatar not found")
    return Response(content=data, media_type="application/octet-stream")
