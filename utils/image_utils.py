"""
Image post-processing for display and download.

These functions never modify the stored source image: they return a new
ImageData (or the same object when nothing has to change). Pixel work is
done with Pillow.

- pad: grow the canvas to the target ratio and center the source (portraits)
- crop: cut the largest centered rectangle at the target ratio (scenes)
"""

import io
import math
import re
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from schemas import AspectRatio, ImageData
from utils.constants import DOWNLOAD_PRESETS, PAD_BACKGROUND_RGBA
from utils.errors import DecodeError
from utils.logger import get_logger

logger = get_logger("image_utils")

# formats stored as-is when a user uploads them
_PASSTHROUGH_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


# ─── decode / encode ──────────────────────────────────────

def open_image(image: ImageData) -> Image.Image:
    """Decode ImageData into a loaded PIL image."""
    try:
        img = Image.open(io.BytesIO(image.data))
        img.load()
        return img
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e


def encode_image(img: Image.Image, fmt: str = "PNG", quality: float = 1.0) -> ImageData:
    """Encode a PIL image. ``quality`` is 0..1 and only applies to JPEG."""
    buf = io.BytesIO()
    if fmt == "JPEG":
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.save(buf, format="JPEG", quality=max(1, min(95, int(round(quality * 100)))))
        return ImageData(data=buf.getvalue(), mime_type="image/jpeg")
    img.save(buf, format=fmt)
    return ImageData(data=buf.getvalue(), mime_type=Image.MIME.get(fmt, "image/png"))


def decode_upload(file_bytes: bytes) -> ImageData:
    """
    Turn an arbitrary uploaded image file into the stored representation.

    Common web formats keep their original bytes; anything else Pillow can
    read is re-encoded to PNG.

    Raises:
        DecodeError: the bytes are not a readable image
    """
    if not file_bytes:
        raise DecodeError("Uploaded file is empty")
    try:
        with Image.open(io.BytesIO(file_bytes)) as candidate:
            candidate.verify()
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Could not decode uploaded image: {e}") from e

    mime = _PASSTHROUGH_FORMATS.get(img.format or "")
    if mime:
        return ImageData(data=file_bytes, mime_type=mime)
    return encode_image(img, "PNG")


# ─── geometry ─────────────────────────────────────────────

def pad_canvas_size(size: Tuple[int, int], ratio: AspectRatio) -> Tuple[int, int]:
    """Smallest canvas at ``ratio`` that contains ``size`` (never shrinks)."""
    width, height = size
    rw, rh = ratio.width, ratio.height
    if width * rh > height * rw:
        # wider than target: keep width, grow height
        return width, max(height, math.ceil(width * rh / rw))
    # taller than (or equal to) target: keep height, grow width
    return max(width, math.ceil(height * rw / rh)), height


def crop_box(size: Tuple[int, int], ratio: AspectRatio) -> Tuple[int, int, int, int]:
    """Largest centered (left, top, right, bottom) box of ``size`` at ``ratio``."""
    width, height = size
    rw, rh = ratio.width, ratio.height
    if width * rh > height * rw:
        # wider than target: crop the sides
        crop_w = min(width, max(1, round(height * rw / rh)))
        left = (width - crop_w) // 2
        return left, 0, left + crop_w, height
    if width * rh < height * rw:
        # taller than target: crop top and bottom
        crop_h = min(height, max(1, round(width * rh / rw)))
        top = (height - crop_h) // 2
        return 0, top, width, top + crop_h
    return 0, 0, width, height


def matches_ratio(size: Tuple[int, int], ratio: AspectRatio) -> bool:
    width, height = size
    return width * ratio.height == height * ratio.width


# ─── transforms ───────────────────────────────────────────

def pad(image: ImageData, ratio: AspectRatio) -> ImageData:
    """
    Letterbox ``image`` onto a translucent neutral canvas at ``ratio``.

    Nothing of the source is cropped: the output contains every source
    pixel, centered.

    Raises:
        DecodeError: the source bytes are not a readable image
    """
    src = open_image(image).convert("RGBA")
    canvas_w, canvas_h = pad_canvas_size(src.size, ratio)
    canvas = Image.new("RGBA", (canvas_w, canvas_h), PAD_BACKGROUND_RGBA)
    dx = (canvas_w - src.width) // 2
    dy = (canvas_h - src.height) // 2
    canvas.alpha_composite(src, (dx, dy))
    return encode_image(canvas, "PNG")


def crop(image: ImageData, ratio: AspectRatio) -> ImageData:
    """
    Center-crop ``image`` to ``ratio``.

    When the source already has the requested ratio the same ImageData is
    returned without re-encoding.

    Raises:
        DecodeError: the source bytes are not a readable image
    """
    src = open_image(image)
    if matches_ratio(src.size, ratio):
        return image
    fmt = src.format if src.format in ("PNG", "JPEG", "WEBP") else "PNG"
    return encode_image(src.crop(crop_box(src.size, ratio)), fmt, quality=0.92)


def preview_character(image: ImageData, ratio: AspectRatio) -> ImageData:
    """Padded portrait for display; falls back to the original on bad data."""
    try:
        return pad(image, ratio)
    except DecodeError as e:
        logger.warning(f"Portrait padding failed, showing original: {e}")
        return image


def preview_scene(image: ImageData, ratio: AspectRatio) -> ImageData:
    """Cropped scene for display; falls back to the original on bad data."""
    try:
        return crop(image, ratio)
    except DecodeError as e:
        logger.warning(f"Scene cropping failed, showing original: {e}")
        return image


# ─── download ─────────────────────────────────────────────

def convert_for_download(image: ImageData, preset: str = "png") -> ImageData:
    """Re-encode a source image with one of DOWNLOAD_PRESETS."""
    if preset not in DOWNLOAD_PRESETS:
        raise ValueError(f"Unknown download preset: {preset}")
    fmt, _mime, quality, _ext = DOWNLOAD_PRESETS[preset]
    return encode_image(open_image(image), fmt, quality)


def download_filename(name: str, preset: str = "png") -> str:
    """File name for a downloaded image, e.g. ``scene-3.jpg``."""
    ext = DOWNLOAD_PRESETS[preset][3]
    safe = re.sub(r"[\\/:*?\"<>|]+", "_", name).strip() or "image"
    return f"{safe}.{ext}"
