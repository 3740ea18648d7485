from __future__ import annotations

import math
from typing import Any, Optional

from winesnap.models.label import AnalysisResult, EnrichedLabel, ExtractedLabel

PLACEHOLDER = "—"

INFERRED_NOTE = "Some details are inferred based on typical examples of this wine style."

LABEL_FIELDS = [
    ("Producer", "producer"),
    ("Wine", "wine_name"),
    ("Vintage", "vintage"),
    ("Region", "region"),
    ("Country", "country"),
    ("Grapes", "grapes"),
    ("Appellation", "appellation"),
    ("ABV", "abv"),
]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and all(_is_blank(v) for v in value):
        return True
    if isinstance(value, dict) and all(_is_blank(v) for v in value.values()):
        return True
    return False


def _inline(text: str) -> str:
    return " ".join(text.split())


def _item_text(value: Any) -> str:
    # Nested shapes (e.g. {"dish": ..., "why": ...}) flatten onto one line.
    if isinstance(value, dict):
        return "; ".join(f"{k}: {_item_text(v)}" for k, v in value.items() if not _is_blank(v))
    if isinstance(value, (list, tuple)):
        return ", ".join(_item_text(v) for v in value if not _is_blank(v))
    return _inline(str(value))


def display_value(value: Any) -> str:
    """Single-line display; em dash for anything missing."""

    if _is_blank(value):
        return PLACEHOLDER
    return _item_text(value)


def display_list(value: Any, bullet: bool = False) -> str:
    """Join list values with commas, or one "- item" per line when bullet=True.

    A plain string is shown as-is, since models sometimes return prose instead of a list.
    """

    if _is_blank(value):
        return PLACEHOLDER
    if not isinstance(value, (list, tuple)):
        return _item_text(value)

    items = [_item_text(v) for v in value if not _is_blank(v)]
    if bullet:
        return "\n".join(f"- {item}" for item in items)
    return ", ".join(items)


def _text_block(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return display_list(value, bullet=True)
    return display_value(value)


def clamp_confidence(value: Any) -> Optional[float]:
    """Clamp into [0, 1]. Returns None for anything that is not a number."""

    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        num = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(num):
        return None
    return min(1.0, max(0.0, num))


def display_confidence(value: Any) -> str:
    clamped = clamp_confidence(value)
    if clamped is None:
        return PLACEHOLDER
    return f"{round(clamped * 100)}%"


def status_text(result: AnalysisResult) -> str:
    if result.error is not None:
        return "Error"
    if result.enrichment_error is not None:
        return "Done (enrichment unavailable)"
    return "Done"


def _section(lines: list[str], title: str, body: str) -> None:
    lines.append("")
    lines.append(f"## {title}")
    lines.append(body)


def _serving_text(serving: Any) -> str:
    if not isinstance(serving, dict):
        return _text_block(serving)

    temp = serving.get("temperature_c")
    if isinstance(temp, (int, float)) and not isinstance(temp, bool):
        temp_text = f"{temp} °C"
    else:
        temp_text = display_value(temp)
    return "\n".join(
        [
            f"- Temperature: {temp_text}",
            f"- Decanting: {display_value(serving.get('decanting'))}",
            f"- Glassware: {display_value(serving.get('glassware'))}",
        ]
    )


def _render_enriched(lines: list[str], enriched: EnrichedLabel) -> None:
    prose = [
        ("Summary", enriched.overview),
        ("Style", enriched.style_overview),
    ]
    for title, value in prose:
        if not _is_blank(value):
            _section(lines, title, _text_block(value))

    if not _is_blank(enriched.typical_tasting_notes):
        _section(lines, "Tasting notes", display_list(enriched.typical_tasting_notes, bullet=True))
    if not _is_blank(enriched.food_pairings):
        _section(lines, "Food pairings", display_list(enriched.food_pairings, bullet=True))
    if not _is_blank(enriched.serving):
        _section(lines, "Serving", _serving_text(enriched.serving))

    more = [
        ("Aging window", enriched.aging_window),
        ("About the producer", enriched.producer_background),
        ("About the region", enriched.region_background),
        ("Price context", enriched.price_context),
    ]
    for title, value in more:
        if not _is_blank(value):
            _section(lines, title, _text_block(value))

    if not _is_blank(enriched.uncertainties):
        _section(lines, "What the label can't tell us", display_list(enriched.uncertainties, bullet=True))
    if not _is_blank(enriched.followup_questions):
        _section(lines, "Questions to ask next", display_list(enriched.followup_questions, bullet=True))


def _transcript(value: Any) -> str:
    # One printed line per list item.
    if isinstance(value, (list, tuple)):
        return "\n".join(_item_text(v) for v in value if not _is_blank(v))
    return _text_block(value)


def _render_extracted(lines: list[str], extracted: Optional[ExtractedLabel]) -> None:
    rows = []
    for label, attr in LABEL_FIELDS:
        value = getattr(extracted, attr) if extracted is not None else None
        rows.append(f"- {label}: {display_value(value)}")
    confidence = extracted.confidence_0_to_1 if extracted is not None else None
    rows.append(f"- Confidence: {display_confidence(confidence)}")
    _section(lines, "From the label", "\n".join(rows))

    if extracted is not None and not _is_blank(extracted.label_text_read):
        _section(lines, "Label text", _transcript(extracted.label_text_read))


def render_card(result: AnalysisResult) -> str:
    """Render whatever the analysis produced as a plain-text card."""

    lines = ["# Wine Snap", f"Status: {status_text(result)}"]

    if result.extracted is not None or result.enriched is not None:
        if result.enriched is not None:
            _render_enriched(lines, result.enriched)
        _render_extracted(lines, result.extracted)
        lines.append("")
        lines.append(INFERRED_NOTE)

    if result.error is not None:
        _section(lines, "Error", result.error)
        if result.details:
            _section(lines, "Details", result.details)

    if result.enrichment_error is not None:
        _section(lines, "Enrichment unavailable", result.enrichment_error)

    if result.raw:
        _section(lines, "Raw model output", result.raw)

    return "\n".join(lines) + "\n"
