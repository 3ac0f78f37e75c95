from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings
from database.db import Base, engine

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# quiet HTTP client debug logs
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ models (registered on Base.metadata before create_all)
from models import classes, results as result_models, schools as school_models, students, templates as template_models  # noqa: F401

# ✅ routers
from routers import parents, results, review, schools, templates

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (admin/teacher portals)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency (X-Latency-Ms response header + access log)
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (consistent JSON error shape)
add_error_handlers(app)

# ✅ /v1 prefixed routers
app.include_router(templates.router, prefix="/v1")
app.include_router(results.router,   prefix="/v1")
app.include_router(review.router,    prefix="/v1")
app.include_router(schools.router,   prefix="/v1")
app.include_router(parents.router,   prefix="/v1")


# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


@app.on_event("startup")
def _create_tables():
    Base.metadata.create_all(bind=engine)


# ✅ root
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - result templates, entry, review and delivery"}
