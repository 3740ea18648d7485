from __future__ import annotations

import base64
import logging
from typing import Optional

import google.generativeai as genai
import httpx
from google.api_core import exceptions as google_exceptions

from winesnap.config import Settings
from winesnap.errors import MissingCredentialError, ProviderError
from winesnap.models.label import EncodedImage

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class ModelClient:
    """One prompt (plus optional image) in, the model's text out."""

    def complete(self, prompt: str, image: Optional[EncodedImage] = None, max_tokens: int = 1024) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "ModelClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AnthropicClient(ModelClient):
    """Messages API over plain HTTP.

    Pass `http_client` to control the transport (tests use httpx.MockTransport).
    A single attempt per call; non-2xx responses raise ProviderError with the body.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = "https://api.anthropic.com",
        http_client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        if not api_key:
            raise MissingCredentialError("ANTHROPIC_API_KEY")
        self.api_key = api_key
        self.model = model
        self.endpoint = f"{base_url.rstrip('/')}/v1/messages"
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.Client(timeout=timeout)

    def _content(self, prompt: str, image: Optional[EncodedImage]) -> list[dict]:
        blocks: list[dict] = []
        if image is not None:
            blocks.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": image.media_type, "data": image.data},
                }
            )
        blocks.append({"type": "text", "text": prompt})
        return blocks

    def complete(self, prompt: str, image: Optional[EncodedImage] = None, max_tokens: int = 1024) -> str:
        body = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": self._content(prompt, image)}],
        }
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        logger.debug("anthropic request: model=%s max_tokens=%d image=%s", self.model, max_tokens, image is not None)
        resp = self._http.post(self.endpoint, headers=headers, json=body)
        if not resp.is_success:
            logger.warning("anthropic returned %d", resp.status_code)
            raise ProviderError("Anthropic", resp.status_code, resp.text)

        data = resp.json()
        for block in data.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text") or ""
        return ""

    def close(self) -> None:
        if self._owns_http:
            self._http.close()


def _response_text(resp: object) -> str:
    """Best-effort extraction of full text from google-generativeai responses.

    `.text` raises ValueError when the candidate has no parts (e.g. blocked), and
    multi-part responses can leave it partial, so fall back to the parts.
    """

    try:
        t = getattr(resp, "text", None)
    except ValueError:
        t = None
    if isinstance(t, str) and t.strip():
        return t.strip()

    chunks: list[str] = []
    for cand in getattr(resp, "candidates", None) or []:
        content = getattr(cand, "content", None)
        for p in getattr(content, "parts", None) or []:
            pt = getattr(p, "text", None)
            if isinstance(pt, str) and pt:
                chunks.append(pt)
    return "".join(chunks).strip()


class GeminiClient(ModelClient):
    """Gemini over google-generativeai.

    The SDK only takes a process-wide key via `genai.configure`, so the key held
    by this instance is re-applied right before each call.
    """

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash"):
        if not api_key:
            raise MissingCredentialError("GEMINI_API_KEY")
        self.api_key = api_key
        self.model = model

    def complete(self, prompt: str, image: Optional[EncodedImage] = None, max_tokens: int = 1024) -> str:
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(
            self.model,
            generation_config={
                "max_output_tokens": max_tokens,
                # Hint to return JSON only (ignored by models that don't support it).
                "response_mime_type": "application/json",
            },
        )

        parts: list = []
        if image is not None:
            parts.append({"mime_type": image.media_type, "data": base64.b64decode(image.data)})
        parts.append(prompt)

        logger.debug("gemini request: model=%s max_tokens=%d image=%s", self.model, max_tokens, image is not None)
        try:
            resp = model.generate_content(parts)
        except google_exceptions.GoogleAPICallError as exc:
            raise ProviderError("Gemini", int(exc.code or 500), exc.message or str(exc)) from exc
        return _response_text(resp)


def build_model_client(settings: Settings) -> ModelClient:
    """Create the configured client. Fails fast when the credential is missing."""

    if settings.provider == "gemini":
        return GeminiClient(settings.gemini_api_key, settings.model)
    if settings.provider != "anthropic":
        raise ValueError(f"Unknown MODEL_PROVIDER: {settings.provider!r}")
    return AnthropicClient(
        settings.anthropic_api_key,
        settings.model,
        base_url=settings.anthropic_base_url,
        timeout=settings.model_timeout_seconds,
    )
