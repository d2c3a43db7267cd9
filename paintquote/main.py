from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from .logging_config import setup_logging
from .routers import quotes, templates

logger = logging.getLogger("paintquote")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Quote generation engine for painting contractors",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(templates.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "paintquote"}


@app.on_event("startup")
def configure_logging():
    setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    logger.info("Quote engine started (database=%s)", settings.DATABASE_URL.split("://")[0])
