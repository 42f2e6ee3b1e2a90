import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db, get_db, get_schema_version
from config import load_config
from routes import templates, phases  # Import routers
from utils.errors import LearnboardError

logger = logging.getLogger(__name__)

app = FastAPI(title="Learnboard", description="Administration API for learning templates")

# Include routers
app.include_router(templates.router, prefix="/api/learning-templates", tags=["learning-templates"])
app.include_router(phases.router, prefix="/api/learning-phases", tags=["learning-phases"])


@app.exception_handler(LearnboardError)
async def learnboard_error_handler(request: Request, exc: LearnboardError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health(conn = Depends(get_db)):
    return {"status": "ok", "schemaVersion": get_schema_version(conn)}


def configure_logging(config: dict) -> None:
    level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    configure_logging(load_config())  # Ensures config exists
    init_db()
    yield

app.router.lifespan_context = lifespan  # For auto init on start

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Learnboard API")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()
    config = load_config()  # Ensures config is copied if missing
    configure_logging(config)
    if args.init:
        init_db()
        logger.info("DB initialized and config copied to ~/.learnboard/")
        sys.exit(0)
    # Run server
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level=config["logging"]["level"].lower())
