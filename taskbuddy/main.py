import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .config import CORS_ORIGINS, HOME_PATH, LOG_LEVEL, STORAGE_ROOT
from .database import create_tables
from .logging_setup import setup_logging
from .routers import auth, live, profile, storage, tasks
from .security import get_optional_user
from .services.live import ChangeFeed
from .storage import ObjectStorage

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="TaskBuddy API",
    description="Task management with categories, due dates, drag-and-drop ordering and attachments",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide collaborators, reached by handlers through dependencies
app.state.storage = ObjectStorage(STORAGE_ROOT)
app.state.change_feed = ChangeFeed()

# Include routers
api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(tasks.router, tags=["tasks"])
api_router.include_router(live.router, tags=["tasks"])
api_router.include_router(profile.router, tags=["profile"])
api_router.include_router(storage.router, tags=["storage"])
app.include_router(api_router)


# Create tables on startup
@app.on_event("startup")
def on_startup():
    create_tables()
    logger.info("TaskBuddy API ready storage=%s", STORAGE_ROOT)


@app.get("/")
def read_root(request: Request):
    """Send signed-in users home and everyone else to sign in."""
    if get_optional_user(request) is None:
        return RedirectResponse("/api/auth/login", status_code=302)
    return RedirectResponse(HOME_PATH, status_code=302)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
