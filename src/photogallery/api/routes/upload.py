"""Signed upload URLs for direct browser uploads."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...error_handling import ValidationError
from ...logging_config import get_logger, log_user_action
from ...models.photo import PhotoCategory
from ...services.auth import UserInfo
from ...services.image_processor import ImageProcessor
from ...services.storage import StorageService
from ...services.upload_manager import SIGNED_UPLOAD_EXPIRATION
from ..dependencies import get_storage, require_user

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


class UploadUrlRequest(BaseModel):
    file_name: str = Field(alias="fileName")
    file_type: str = Field(alias="fileType")
    category: str


@router.post("/upload")
def create_upload_url(
    payload: UploadUrlRequest,
    user: UserInfo = Depends(require_user),
    storage: StorageService = Depends(get_storage),
):
    if payload.file_type not in ImageProcessor.ALLOWED_MIME_TYPES:
        raise ValidationError(
            f"Rejected upload of type {payload.file_type}",
            code="invalid_file_type",
            user_message="Invalid file type",
            details={"file_type": payload.file_type},
        )

    try:
        category = PhotoCategory.parse(payload.category)
    except ValueError as e:
        raise ValidationError(str(e), code="invalid_category", user_message="Invalid category") from e

    file_path = storage.build_direct_upload_path(user.user_id, category.value, payload.file_name)
    signed = storage.create_signed_upload_url(file_path, payload.file_type, expiration=SIGNED_UPLOAD_EXPIRATION)

    log_user_action(user.user_id, "upload_url_issued", file_path=file_path, category=category.value)
    return JSONResponse({"uploadUrl": signed["signed_url"], "filePath": signed["path"], "token": signed["token"]})
