from piinty.core.config import settings
from piinty.db.mongo import get_db
from piinty.repositories.base import GroupStore
from piinty.repositories.group_repo import GroupRepository
from piinty.repositories.local_store import LocalGroupStore
from piinty.services.photo_service import PhotoStorage


async def get_group_store() -> GroupStore:
    """Return the configured group store."""
    if settings.STORAGE_BACKEND == "local":
        return LocalGroupStore(settings.LOCAL_STORE_PATH)
    return GroupRepository(get_db())


async def get_photo_storage() -> PhotoStorage:
    return PhotoStorage()
