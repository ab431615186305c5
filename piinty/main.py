from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from piinty.core.config import settings
from piinty.core.logging import setup_logging
from piinty.db.mongo import connect_to_mongo, close_mongo_connection
from piinty.api.v1.api import api_router

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    uses_mongo = settings.STORAGE_BACKEND != "local"
    if uses_mongo:
        await connect_to_mongo()
    yield
    if uses_mongo:
        await close_mongo_connection()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {"message": "Welcome to Piinty API"}

app.include_router(api_router, prefix=settings.API_V1_STR)
app.mount(
    settings.PHOTO_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="photos",
)
