from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings
from database import init_db
from api.errors import register_exception_handlers
from api.favourites import router as favourites_router
from api.lenders import router as lenders_router
from api.users import router as users_router
from services.attachments import DocumentAttachmentManager
from services.blob_store import LocalBlobStore
from services.lender_repository import LenderRepository
from services.record_store import SqlRecordStore
from services.users import UserDirectory
from utils.log import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    store = SqlRecordStore()
    blobs = LocalBlobStore(settings.blob_storage_dir, settings.public_files_url)
    attachments = DocumentAttachmentManager(store, blobs)
    app.state.store = store
    app.state.repository = LenderRepository(store, attachments)
    app.state.users = UserDirectory(store)
    app.state.favourites = {}
    await app.state.repository.refresh()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Commercial lender directory: search, lender records and criteria sheets",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(lenders_router)
app.include_router(favourites_router)
app.include_router(users_router)

Path(settings.blob_storage_dir).mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=settings.blob_storage_dir), name="files")


@app.get("/health")
async def health():
    return {"status": "ok"}
