from __future__ import annotations

import logging

from winesnap.config import Settings
from winesnap.errors import ModelOutputError
from winesnap.models.label import AnalysisResult, EncodedImage
from winesnap.services.enrichment import enrich
from winesnap.services.extraction import extract
from winesnap.services.model_client import ModelClient

logger = logging.getLogger(__name__)


def analyze_label(client: ModelClient, image: EncodedImage, settings: Settings) -> AnalysisResult:
    """Run extraction, then enrichment on its result.

    A failed extraction ends the run (502). A failed enrichment still returns
    the extraction alongside the enrichment error (200).
    ProviderError and network errors propagate to the caller.
    """

    try:
        extracted = extract(client, image, max_tokens=settings.extract_max_tokens)
    except ModelOutputError as exc:
        logger.warning("extraction failed: %s", exc.message)
        return AnalysisResult(error=exc.message, raw=exc.raw, status_code=502)

    if not settings.enable_enrichment:
        return AnalysisResult(extracted=extracted)

    try:
        enriched = enrich(client, extracted, max_tokens=settings.enrich_max_tokens)
    except ModelOutputError as exc:
        logger.warning("enrichment failed, returning extraction only: %s", exc.message)
        return AnalysisResult(extracted=extracted, enrichment_error=exc.message, raw=exc.raw)

    return AnalysisResult(extracted=extracted, enriched=enriched)
