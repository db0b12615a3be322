import logging
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Response

from ..dependencies import get_storage
from ..exceptions import StorageError
from ..schemas.auth import SessionUser
from ..security import get_current_user
from ..storage import BUCKETS, ObjectStorage, owned_by

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage")


def _owns(user_id: str, bucket: str, path: str) -> bool:
    return bucket in BUCKETS and owned_by(user_id, path)


@router.get("/{bucket}/{path:path}")
def download_object(
    bucket: str,
    path: str,
    current_user: SessionUser = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
):
    """Serve one of the caller's blobs."""
    if not _owns(current_user.id, bucket, path):
        raise HTTPException(status_code=404, detail="Object not found")
    try:
        data = storage.download(bucket, path)
    except StorageError:
        logger.exception("Error downloading %s/%s", bucket, path)
        raise HTTPException(status_code=404, detail="Object not found")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
