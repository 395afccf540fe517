"""
Image helpers for the upload pipeline.

- resize(): bound the size of raster CVs before they are sent to the AI model
- compute_portrait_box(): geometric portrait rule around a detected face
- crop_portrait(): cut a square headshot out of an image or a PDF first page

Face boxes are ``[yMin, xMin, yMax, xMax]`` on a 0-1000 scale relative to the
source image. The padding ratios, JPEG qualities and PDF raster scale come
from settings so they can be tuned without touching the geometry.
"""

import io
import logging
import math
from typing import Optional, Sequence, Tuple

import pdfplumber
from PIL import Image, ImageOps

from talentflow.core.config import settings

logger = logging.getLogger(__name__)

JPEG_MIME_TYPE = "image/jpeg"
PDF_MIME_TYPE = "application/pdf"

WHITE = (255, 255, 255)


def is_raster_image(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.lower().startswith("image/")


def _open_image(content: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(content))
    image.load()
    # Phone photos store rotation in EXIF; the model sees the upright image
    return ImageOps.exif_transpose(image)


def _flatten_on_white(image: Image.Image) -> Image.Image:
    """Convert to RGB, painting transparent pixels white instead of black."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def resize(
    content: bytes,
    mime_type: str,
    max_dimension: Optional[int] = None,
    quality: Optional[int] = None,
) -> Tuple[bytes, str]:
    """
    Shrink a raster image so its longer edge fits ``max_dimension``.

    Non-image payloads (PDF and anything else) are returned unchanged. Images
    are never upscaled; they are always re-encoded as JPEG.

    Args:
        content: Raw file bytes
        mime_type: Declared mime type of ``content``
        max_dimension: Longest allowed edge in pixels (default RESIZE_MAX_DIMENSION)
        quality: JPEG quality factor (default RESIZE_JPEG_QUALITY)

    Returns:
        Tuple of (bytes, mime_type) to send to the extraction adapter

    Raises:
        PIL.UnidentifiedImageError: If the bytes are not a decodable image
    """
    if not is_raster_image(mime_type):
        return content, mime_type

    max_dimension = max_dimension or settings.RESIZE_MAX_DIMENSION
    quality = quality or settings.RESIZE_JPEG_QUALITY

    image = _flatten_on_white(_open_image(content))
    original_size = image.size
    image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

    encoded = _encode_jpeg(image, quality)
    logger.debug(
        f"Image resized from {original_size[0]}x{original_size[1]} to "
        f"{image.size[0]}x{image.size[1]} ({len(content)} -> {len(encoded)} bytes)"
    )
    return encoded, JPEG_MIME_TYPE


def compute_portrait_box(
    face_box: Optional[Sequence[float]],
    width: int,
    height: int,
    pad_top_ratio: Optional[float] = None,
    pad_bottom_ratio: Optional[float] = None,
    scale: Optional[int] = None,
) -> Optional[Tuple[int, int, int, int]]:
    """
    Compute the square portrait crop around a face, in pixels.

    The square side is ``faceH * (1 + pad_top + pad_bottom)``: room above for
    hair and forehead, below for the shoulders. It is centred horizontally on
    the face. The square is shifted to lie inside the image and only shrunk
    when the image itself is smaller than the square.

    Returns:
        (left, top, right, bottom) with right - left == bottom - top, or None
        when ``face_box`` is not four numbers or the image is empty
    """
    if face_box is None or isinstance(face_box, (str, bytes)):
        return None
    try:
        coords = [float(value) for value in face_box]
    except (TypeError, ValueError):
        return None
    if len(coords) != 4 or width < 1 or height < 1:
        return None
    if not all(math.isfinite(value) for value in coords):
        return None

    pad_top_ratio = settings.PORTRAIT_PAD_TOP_RATIO if pad_top_ratio is None else pad_top_ratio
    pad_bottom_ratio = settings.PORTRAIT_PAD_BOTTOM_RATIO if pad_bottom_ratio is None else pad_bottom_ratio
    scale = scale or settings.FACE_BOX_SCALE

    y_min, x_min, y_max, x_max = (min(max(value, 0.0), float(scale)) for value in coords)
    y_min, y_max = sorted((y_min, y_max))
    x_min, x_max = sorted((x_min, x_max))

    face_y = y_min / scale * height
    face_x = x_min / scale * width
    face_h = (y_max - y_min) / scale * height
    face_w = (x_max - x_min) / scale * width

    pad_top = face_h * pad_top_ratio
    pad_bottom = face_h * pad_bottom_ratio

    side = int(round(face_h + pad_top + pad_bottom))
    side = max(1, min(side, width, height))

    center_x = face_x + face_w / 2
    left = int(round(center_x - side / 2))
    top = int(round(face_y - pad_top))

    left = min(max(left, 0), width - side)
    top = min(max(top, 0), height - side)

    return left, top, left + side, top + side


def _load_first_page(content: bytes, mime_type: str, pdf_scale: float) -> Optional[Image.Image]:
    if (mime_type or "").lower() == PDF_MIME_TYPE:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            if not pdf.pages:
                return None
            page_image = pdf.pages[0].to_image(resolution=72 * pdf_scale)
            return page_image.original.convert("RGB")
    if is_raster_image(mime_type):
        return _open_image(content)
    return None


def crop_portrait(
    content: bytes,
    mime_type: str,
    face_box: Optional[Sequence[float]],
    quality: Optional[int] = None,
    pdf_scale: Optional[float] = None,
) -> Optional[bytes]:
    """
    Cut a square portrait out of the original (not resized) CV file.

    PDFs are rasterised on their first page only. The portrait is painted on
    a white background and encoded as JPEG.

    Returns:
        JPEG bytes, or None if the box is malformed or the file cannot be
        decoded. Never raises: a missing portrait must not stop ingestion.
    """
    if face_box is None:
        return None
    try:
        if len(face_box) != 4:
            logger.info(f"Ignoring malformed face coordinates: {face_box!r}")
            return None
    except TypeError:
        return None

    quality = quality or settings.PORTRAIT_JPEG_QUALITY
    pdf_scale = pdf_scale or settings.PDF_RASTER_SCALE

    try:
        image = _load_first_page(content, mime_type, pdf_scale)
        if image is None:
            logger.info(f"No raster source for portrait extraction ({mime_type})")
            return None

        box = compute_portrait_box(face_box, image.width, image.height)
        if box is None:
            return None

        portrait = _flatten_on_white(image.crop(box))
        logger.debug(f"Portrait cropped at {box} from {image.width}x{image.height} source")
        return _encode_jpeg(portrait, quality)

    except Exception as e:
        logger.warning(f"Portrait extraction failed: {e}")
        return None
