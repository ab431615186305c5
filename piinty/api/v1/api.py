from fastapi import APIRouter
from piinty.api.v1.endpoints import groups, photos, profiles

api_router = APIRouter()

api_router.include_router(groups.router, prefix="/groups", tags=["groups"])
api_router.include_router(photos.router, prefix="/photos", tags=["photos"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
