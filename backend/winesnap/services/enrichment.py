from __future__ import annotations

import json
import logging

from winesnap.errors import ModelOutputError
from winesnap.models.label import EnrichedLabel, ExtractedLabel
from winesnap.services.model_client import ModelClient
from winesnap.services.sanitize import parse_json_object, strip_code_fences

logger = logging.getLogger(__name__)

_ENRICHMENT_INSTRUCTIONS = (
    "Task B (ENRICH, USER-FACING): Write the kind of explanation a knowledgeable sommelier "
    "would give after looking at this label.\n\n"
    "Using ONLY the extracted fields and label_text_read below, return STRICT JSON ONLY with these keys:\n\n"
    "- overview: 2-3 plain-language sentences on what this wine is.\n"
    "- style_overview: the style (body, fruit vs earth, old/new world, and so on).\n"
    "- typical_tasting_notes: aromas and flavours typical for this style, as a list or a short paragraph.\n"
    "- food_pairings: a list of 4-6 concrete dishes.\n"
    "- serving: an object with temperature_c, decanting and glassware.\n"
    "- aging_window: how wines like this are usually enjoyed over time.\n"
    "- producer_background: a short note on the producer if it is well known, otherwise null.\n"
    "- region_background: what the region or appellation is and why it matters.\n"
    "- price_context: how wines like this are usually priced against similar bottles.\n"
    "- uncertainties: a list of what cannot be known from the label alone.\n"
    "- followup_questions: a list of questions a curious drinker might ask next.\n\n"
    "Rules:\n"
    "- Say explicitly when something is inferred or typical rather than read from the label.\n"
    "- Do NOT invent awards, critic scores or exact technical details unless they appear in the label text.\n"
    "- If something is unknown, say so instead of making it up.\n"
    "- Do not repeat or correct the extracted fields.\n"
    "- JSON only. No markdown.\n\n"
)


def build_enrichment_prompt(extracted: ExtractedLabel) -> str:
    return _ENRICHMENT_INSTRUCTIONS + "EXTRACTED_JSON:\n" + json.dumps(extracted.to_payload(), ensure_ascii=False)


def enrich(client: ModelClient, extracted: ExtractedLabel, max_tokens: int = 2000) -> EnrichedLabel:
    """Pass B: inferred context derived only from a Pass A result (text-only call)."""

    prompt = build_enrichment_prompt(extracted)
    logger.debug("enrichment prompt len: %d", len(prompt))

    text = strip_code_fences(client.complete(prompt, max_tokens=max_tokens))
    logger.debug("enrichment raw len: %d", len(text))

    try:
        data = parse_json_object(text)
    except ValueError as exc:
        raise ModelOutputError("enrichment", "Enrichment not valid JSON", text) from exc

    return EnrichedLabel.model_validate(data)
