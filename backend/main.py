"""Image host and article studio FastAPI application."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from errors import register_error_handlers
from models import create_tables
from api import admin, articles, images, keys, uploads

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Image Host API", version="1.0.0")

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_error_handlers(app)

app.include_router(uploads.router)
app.include_router(keys.router)
app.include_router(admin.router)
app.include_router(images.router)
app.include_router(articles.router)


@app.on_event("startup")
async def startup():
    logger.info("Creating database tables...")
    await create_tables()


@app.get("/api/health")
async def health():
    return {"status": "ok"}
