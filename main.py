import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from database.init_db import create_tables

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# quiet HTTP client debug logs
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import (
    analytics, attendance, categories, classes, grades,
    periods, students, summary, tasks,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        create_tables()
    logger.info("%s %s started (env=%s)", settings.APP_TITLE, settings.APP_VERSION, settings.ENV)
    yield


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# ✅ CORS (origins come from settings)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency (adds the X-Latency-Ms response header)
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (one JSON error format)
add_error_handlers(app)

# ✅ routers under /v1
app.include_router(classes.router,     prefix="/v1")
app.include_router(students.router,    prefix="/v1")
app.include_router(categories.router,  prefix="/v1")
app.include_router(periods.router,     prefix="/v1")
app.include_router(tasks.router,       prefix="/v1")
app.include_router(grades.router,      prefix="/v1")
app.include_router(summary.router,     prefix="/v1")
app.include_router(analytics.router,   prefix="/v1")
app.include_router(attendance.router,  prefix="/v1")


# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


# ✅ root
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - weighted period and category grading"}
