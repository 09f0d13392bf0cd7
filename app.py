from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from routers.audio import audio_router
from dependencies import get_speech_services
from logging_config import get_logger, setup_logging
import os
from contextlib import asynccontextmanager

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_speech_services.cache_info().currsize:
        await get_speech_services().aclose()
        logger.info("Closed speech service client")


app = FastAPI(title="BabelRoom", lifespan=lifespan)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(rooms_router)
app.include_router(audio_router)

logger.info("FastAPI application initialized")


@app.get("/health")
async def health():
    return {"status": "ok"}

