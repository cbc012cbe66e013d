#!/usr/bin/env python
"""FastAPI server for the shortsmith web interface."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.dependencies import get_session_store, shutdown_services
from api.routers import core, videos
from utils.config import load_config, validate_config
from utils.logging import setup_logging

config = load_config()
setup_logging(config.get("log_level", "INFO"), json_output=config.get("log_json", False))
logger = logging.getLogger(__name__)

OUTPUT_DIR = Path(config.get("output_dir") or "output")
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for problem in validate_config(config):
        logger.warning(f"Config: {problem}")
    await get_session_store().connect()
    logger.info("Shortsmith API started")
    yield
    await shutdown_services()
    logger.info("Shortsmith API stopped")


app = FastAPI(title="Shortsmith API", version="1.0.0", lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(videos.router)

# Final videos and thumbnails
app.mount("/output", StaticFiles(directory=str(OUTPUT_DIR)), name="output")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.get("port", 8000), log_level="info")
