from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from winesnap.config import Settings, get_settings
from winesnap.errors import ImageDecodeError, MissingCredentialError, ProviderError
from winesnap.models.label import AnalysisResult, AnalyzeRequest, EncodedImage
from winesnap.services.images import prepare_image
from winesnap.services.model_client import ModelClient, build_model_client
from winesnap.services.pipeline import analyze_label
from winesnap.services.render import render_card

logger = logging.getLogger(__name__)

router = APIRouter()

ClientFactory = Callable[[Settings], ModelClient]


def get_client_factory() -> ClientFactory:
    """Overridden in tests to swap in a fake model client."""
    return build_model_client


def _analyze(image: EncodedImage, settings: Settings, client_factory: ClientFactory) -> AnalysisResult:
    # The client is built per request so a missing key fails before any network call.
    try:
        with client_factory(settings) as client:
            return analyze_label(client, image, settings)
    except MissingCredentialError as exc:
        logger.error("%s", exc)
        return AnalysisResult(error=str(exc), status_code=500)
    except ProviderError as exc:
        logger.warning("model provider error: %s", exc)
        return AnalysisResult(error="Server error", details=str(exc), status_code=500)
    except Exception as exc:
        logger.exception("label analysis failed")
        return AnalysisResult(error="Server error", details=str(exc), status_code=500)


async def _prepare_upload(upload: UploadFile, settings: Settings) -> EncodedImage:
    data = await upload.read()
    return await run_in_threadpool(
        prepare_image, data, settings.image_max_dim, settings.image_jpeg_quality
    )


@router.post("/analyze")
def analyze(
    payload: AnalyzeRequest,
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> JSONResponse:
    """Two-pass analysis of an already-prepared base64 image."""

    if not payload.imageBase64 or not payload.mediaType:
        return JSONResponse({"error": "Missing imageBase64 or mediaType"}, status_code=400)

    image = EncodedImage(data=payload.imageBase64, media_type=payload.mediaType)
    result = _analyze(image, settings, client_factory)
    return JSONResponse(result.to_payload(), status_code=result.status_code)


@router.post("/analyze/upload")
async def analyze_upload(
    image: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> JSONResponse:
    prepared = await _prepare_upload(image, settings)
    result = await run_in_threadpool(_analyze, prepared, settings, client_factory)
    return JSONResponse(result.to_payload(), status_code=result.status_code)


@router.post("/card", response_class=PlainTextResponse)
async def label_card(
    image: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> PlainTextResponse:
    """Same as /analyze/upload, rendered as a readable text card."""

    try:
        prepared = await _prepare_upload(image, settings)
    except ImageDecodeError as exc:
        result = AnalysisResult(error="Could not decode image", details=str(exc), status_code=400)
    else:
        result = await run_in_threadpool(_analyze, prepared, settings, client_factory)
    return PlainTextResponse(render_card(result), status_code=result.status_code)
