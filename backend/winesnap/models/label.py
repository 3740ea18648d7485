from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EncodedImage(BaseModel):
    data: str = Field(description="Base64-encoded image bytes (no data: prefix)")
    media_type: str = Field(default="image/jpeg")


class ExtractedLabel(BaseModel):
    """Pass A output: only what is printed on the label.

    Every key is always present in the output; missing ones are null. Values are
    kept exactly as the model returned them (a transcript may come back as a
    list of lines, a vintage as a number); the prompt asks for the shape, the
    renderer copes with whatever arrives.
    """

    model_config = ConfigDict(extra="ignore")

    producer: Optional[Any] = None
    wine_name: Optional[Any] = None
    vintage: Optional[Any] = None
    region: Optional[Any] = None
    country: Optional[Any] = None
    grapes: Optional[Any] = Field(default=None, description="String or list of strings")
    appellation: Optional[Any] = None
    abv: Optional[Any] = None
    label_text_read: Optional[Any] = None
    # Clamping happens at display time.
    confidence_0_to_1: Optional[Any] = None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")


class EnrichedLabel(BaseModel):
    """Pass B output: inferred/typical context, never label facts.

    Unknown keys are dropped, so nothing here can shadow an extracted field.
    Values pass through untouched.
    """

    model_config = ConfigDict(extra="ignore")

    overview: Optional[Any] = None
    style_overview: Optional[Any] = None
    typical_tasting_notes: Optional[Any] = None
    food_pairings: Optional[Any] = None
    serving: Optional[Any] = Field(default=None, description="{temperature_c, decanting, glassware} or text")
    aging_window: Optional[Any] = None
    producer_background: Optional[Any] = None
    region_background: Optional[Any] = None
    price_context: Optional[Any] = None
    uncertainties: Optional[Any] = None
    followup_questions: Optional[Any] = None

    def to_payload(self) -> dict:
        # Only the keys the model actually returned.
        return self.model_dump(mode="json", exclude_unset=True)


class AnalysisResult(BaseModel):
    """Outcome of one submission. Never stored."""

    extracted: Optional[ExtractedLabel] = None
    enriched: Optional[EnrichedLabel] = None
    raw: Optional[str] = None
    error: Optional[str] = None
    enrichment_error: Optional[str] = None
    details: Optional[str] = None
    status_code: int = 200

    @property
    def is_partial(self) -> bool:
        return self.extracted is not None and self.enrichment_error is not None

    def to_payload(self) -> dict:
        if self.error is not None:
            payload: dict[str, Any] = {"error": self.error}
            if self.raw is not None:
                payload["raw"] = self.raw
            if self.details is not None:
                payload["details"] = self.details
            return payload

        payload = {"extracted": self.extracted.to_payload() if self.extracted is not None else None}
        if self.enrichment_error is not None:
            payload["enrichment_error"] = self.enrichment_error
            payload["raw"] = self.raw
        else:
            payload["enriched"] = self.enriched.to_payload() if self.enriched is not None else None
        return payload


class AnalyzeRequest(BaseModel):
    # Optional here so a missing field is reported as 400, not 422.
    imageBase64: Optional[str] = None
    mediaType: Optional[str] = None
