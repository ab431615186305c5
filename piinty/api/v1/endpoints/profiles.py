from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from piinty.core.auth import get_current_member
from piinty.db.session import get_group_store, get_photo_storage
from piinty.repositories.base import GroupStore
from piinty.schemas.group import MemberResponse
from piinty.services.photo_service import PhotoStorage
from piinty.utils.group_validation import MemberNotFoundError, PhotoRejectedError

router = APIRouter()


@router.patch("/me/avatar", response_model=MemberResponse)
async def update_avatar(
    file: UploadFile = File(...),
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store),
    storage: PhotoStorage = Depends(get_photo_storage)
):
    """Upload a new profile picture for the caller"""
    try:
        avatar_url = await storage.save_upload(file)
    except PhotoRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc)
        )

    try:
        member = await store.update_avatar(member_id, avatar_url)
    except MemberNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc)
        )
    return MemberResponse(id=member.id, display_name=member.label, avatar_url=member.avatar_url)
