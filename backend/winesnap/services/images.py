from __future__ import annotations

import base64
import io
import logging

from PIL import Image, ImageOps

from winesnap.errors import ImageDecodeError
from winesnap.models.label import EncodedImage

logger = logging.getLogger(__name__)

# Large enough for small label print, small enough to keep the request light.
DEFAULT_MAX_DIM = 1280
DEFAULT_JPEG_QUALITY = 82


def _decode(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Image load failed: {exc}") from exc
    # Phone photos often carry rotation in EXIF only.
    return ImageOps.exif_transpose(img).convert("RGB")


def downscale(img: Image.Image, max_dim: int = DEFAULT_MAX_DIM) -> Image.Image:
    """Shrink so neither side exceeds max_dim, keeping aspect ratio. Never upscales."""

    w, h = img.size
    scale = min(1.0, max_dim / float(max(w, h)))
    if scale >= 1.0:
        return img

    new_w = max(1, round(w * scale))
    new_h = max(1, round(h * scale))
    logger.debug("Resizing image from %dx%d to %dx%d", w, h, new_w, new_h)
    return img.resize((new_w, new_h), Image.Resampling.LANCZOS)


def prepare_image(
    data: bytes,
    max_dim: int = DEFAULT_MAX_DIM,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> EncodedImage:
    """Decode an uploaded image and re-encode it as a base64 JPEG payload.

    Raises ImageDecodeError if the bytes are not a decodable image.
    """

    if not data:
        raise ImageDecodeError("Empty upload")

    img = downscale(_decode(data), max_dim=max_dim)

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return EncodedImage(data=encoded, media_type="image/jpeg")
