"""Upload target issuance for clients that PUT files straight to storage."""

from fastapi import APIRouter, Depends, HTTPException, Request

from store_survey.core.config import settings
from store_survey.core.deps import get_storage_service
from store_survey.core.rate_limit import limiter, per_minute
from store_survey.schemas.survey import UploadTargetRequest, UploadTargetResponse
from store_survey.services.storage_service import (
    InvalidUploadError,
    StorageService,
    UploadTargetError,
)

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/targets", response_model=UploadTargetResponse)
@limiter.limit(per_minute(settings.RATE_LIMIT_UPLOADS))
def create_upload_target(
    request: Request,
    data: UploadTargetRequest,
    storage: StorageService = Depends(get_storage_service),
):
    """
    Issue a presigned PUT URL for one file slot.

    The key is ``<owner>/<slot label><extension>``; the extension follows
    the declared content type, which must also be sent on the PUT.
    """
    try:
        target = storage.issue_upload_target(data.slot, data.owner_name, data.content_type)
    except InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadTargetError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return UploadTargetResponse(upload_url=target.upload_url, key=target.key)
