from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from winesnap.api.v1.routes import router as v1_router
from winesnap.errors import ImageDecodeError

# Load .env if present (no-op if missing)
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG
    if os.getenv("WINESNAP_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}
    else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Wine Snap", version="0.1.0")

# MVP-friendly: allow local dev frontends.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix="/api/v1")


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": "Invalid request", "details": str(exc)}, status_code=400)


@app.exception_handler(ImageDecodeError)
async def _bad_image(request: Request, exc: ImageDecodeError) -> JSONResponse:
    return JSONResponse({"error": "Could not decode image", "details": str(exc)}, status_code=400)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
