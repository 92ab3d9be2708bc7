from __future__ import annotations

import sys
import time
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Ensure root path for imports when running directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.routes import router  # noqa: E402
from storage.interface import StorageError  # noqa: E402
from utils.logger import get_logger  # noqa: E402

logger = get_logger(__name__)

app = FastAPI(
    title="StockWise Pricing API",
    description="Demand forecasting and dynamic pricing for inventory products",
    version="0.1.0",
)
app.include_router(router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info("%s %s -> %d (%.3fs)", request.method, request.url.path, response.status_code, time.perf_counter() - start)
    return response


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    # reads that need the store fail as unavailable; writes are handled per route
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/")
def index():
    return {"service": "StockWise Pricing API", "docs": "/docs", "health": "/api/health"}

# To run: uvicorn api.server:app --reload
