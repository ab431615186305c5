from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from piinty.core.auth import get_current_member
from piinty.db.session import get_photo_storage
from piinty.schemas.pint import PhotoResponse
from piinty.services.photo_service import PhotoStorage
from piinty.utils.group_validation import PhotoRejectedError

router = APIRouter()


@router.post("/", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: UploadFile = File(...),
    member_id: str = Depends(get_current_member),
    storage: PhotoStorage = Depends(get_photo_storage)
):
    """Store a photo and return the reference to attach to a pint"""
    try:
        photo_ref = await storage.save_upload(file)
    except PhotoRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc)
        )
    return PhotoResponse(photo_ref=photo_ref)
