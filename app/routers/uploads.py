from fastapi import APIRouter, Depends, File, UploadFile, status

from app.core.auth import require_admin
from app.dependencies import get_upload_service
from app.schemas.category import AssetRef
from app.schemas.upload import UploadListResponse, UploadResponse
from app.services.upload_service import UploadService

router = APIRouter(
    prefix="/uploads",
    tags=["Uploads"],
    dependencies=[Depends(require_admin)],
)


def _to_ref(stored) -> AssetRef:
    return AssetRef(url=stored.url, asset_id=stored.asset_id)


@router.post(
    "/category-image",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a category image",
)
def upload_category_image(
    file: UploadFile = File(...),
    service: UploadService = Depends(get_upload_service),
):
    """
    Upload one image for a category (admin only).

    - Accepts JPEG, PNG, WEBP up to 5MB.
    - Returns {url, asset_id} to pass as `image` on category create/update.
    """
    stored = service.upload_category_image(file.content_type, file.file.read())
    return UploadResponse(data=_to_ref(stored))


@router.post(
    "/dress-images",
    response_model=UploadListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload one or more dress images",
)
def upload_dress_images(
    files: list[UploadFile] = File(...),
    service: UploadService = Depends(get_upload_service),
):
    """
    Upload up to 10 dress images in one request (admin only).

    The whole batch is rejected if any file has a wrong type or size.
    """
    payload = [(f.content_type, f.file.read()) for f in files]
    stored = service.upload_dress_images(payload)
    data = [_to_ref(s) for s in stored]
    return UploadListResponse(count=len(data), data=data)
