import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.logging import configure_logging
from .core.settings import settings
from .db import Base, engine
from .routers import trips

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Freightmatch")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health():
    return {"status":"ok"}

app.include_router(trips.router, prefix="/trips")

logger.info("Trip search ready (max deviation %.0f km)", settings.MAX_DEVIATION_KM)
