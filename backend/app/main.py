import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime, timezone

from app.config import setup_logging
from app.middleware.error_handler import register_error_handlers
from app.routes import buildings, audits, proxy, chat, translations
from core.environment import load_settings, require_store_credentials, warn_missing_service_keys
from database import create_db_and_tables

logger = logging.getLogger(__name__)

settings = load_settings()

app = FastAPI(
    title="Energy Audit API",
    version="1.0.0",
    description="Energy audit intake: document OCR, AI analysis and audit reports"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

register_error_handlers(app)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"RESPONSE: {response.status_code} {request.method} {request.url.path}")
    return response


@app.on_event("startup")
async def startup_event():
    """Check configuration and initialize database tables"""
    setup_logging(settings.debug)
    require_store_credentials()
    warn_missing_service_keys()
    logger.info("Initializing database tables...")
    await create_db_and_tables()
    logger.info("Database tables initialized")


app.include_router(buildings.router, prefix="/api/v1/buildings", tags=["buildings"])
app.include_router(audits.router, prefix="/api/v1/audits", tags=["audits"])
app.include_router(proxy.router, prefix="/api/v1/proxy", tags=["proxy"])
app.include_router(chat.router, prefix="/api/v1/chat", tags=["chat"])
app.include_router(translations.router, prefix="/api/v1/translations", tags=["translations"])


@app.get("/")
async def root():
    return {"message": "Energy Audit API is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/healthz")
async def healthz():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "energy-audit-api",
    }
