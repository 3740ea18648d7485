from __future__ import annotations

import logging

from winesnap.errors import ModelOutputError
from winesnap.models.label import EncodedImage, ExtractedLabel
from winesnap.services.model_client import ModelClient
from winesnap.services.sanitize import parse_json_object, strip_code_fences

logger = logging.getLogger(__name__)

EXTRACTION_KEYS = list(ExtractedLabel.model_fields)

EXTRACTION_PROMPT = (
    "Task A (EXTRACT ONLY): Read the wine label in the image. "
    "Return STRICT JSON ONLY (no prose, no markdown) with exactly these keys: "
    f"{', '.join(EXTRACTION_KEYS)}. "
    "grapes may be a string or an array of strings. "
    "label_text_read is a plain transcript of the text you can read on the label. "
    "confidence_0_to_1 is a number between 0 and 1 for how legible the label was. "
    "Rules: use null for any field that is not explicitly supported by text printed on the label. "
    "Do not guess. Do not add extra keys."
)


def extract(client: ModelClient, image: EncodedImage, max_tokens: int = 900) -> ExtractedLabel:
    """Pass A: label-grounded fields from the image.

    Raises ModelOutputError carrying the sanitized text when the reply is not
    a JSON object. Field values are not type-checked.
    """

    text = strip_code_fences(client.complete(EXTRACTION_PROMPT, image=image, max_tokens=max_tokens))
    logger.debug("extraction raw len: %d", len(text))

    try:
        data = parse_json_object(text)
    except ValueError as exc:
        raise ModelOutputError("extraction", "Extraction not valid JSON", text) from exc

    return ExtractedLabel.model_validate(data)
