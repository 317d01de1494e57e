"""
Pillow raster helpers shared by the image and document sessions.

Sources may be a path, raw bytes, a binary file object, a ``PIL.Image.Image``
or a numpy array (H x W or H x W x C, uint8).
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageEnhance, ImageOps, ImageSequence

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, BinaryIO, Image.Image, np.ndarray]

# Pillow format name -> (MIME type, file extension)
_FORMATS = {
    "JPEG": ("image/jpeg", "jpg"),
    "PNG": ("image/png", "png"),
    "WEBP": ("image/webp", "webp"),
    "GIF": ("image/gif", "gif"),
    "BMP": ("image/bmp", "bmp"),
    "TIFF": ("image/tiff", "tiff"),
    "PDF": ("application/pdf", "pdf"),
}

_ALIASES = {
    "JPG": "JPEG",
    "TIF": "TIFF",
}

# Formats that cannot store an alpha channel
_NO_ALPHA = {"JPEG", "BMP", "PDF"}


def normalize_format(fmt: str) -> Tuple[str, str, str]:
    """Map an extension, MIME type or format name to ``(pil_format, mime, ext)``.

    Accepts ``"jpg"``, ``".jpg"``, ``"image/jpeg"``, ``"JPEG"``, ...

    Raises:
        ValueError: If the format is not supported.
    """
    name = fmt.strip()
    if "/" in name:
        name = name.split("/", 1)[1]
    name = name.lstrip(".").upper()
    name = _ALIASES.get(name, name)
    if name not in _FORMATS:
        raise ValueError(f"Unsupported export format {fmt!r}")
    mime, ext = _FORMATS[name]
    return name, mime, ext


def open_image(source: ImageSource) -> Image.Image:
    """Open ``source`` as a fully loaded Pillow image."""
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, np.ndarray):
        return Image.fromarray(source)
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    image = Image.open(source)
    image.load()
    return image


def open_frames(source: Any) -> List[Image.Image]:
    """All frames of a (possibly multi-page) source, each as an independent image.

    A list or tuple of sources is treated as one page per item.
    """
    if isinstance(source, (list, tuple)):
        return [open_image(item).copy() for item in source]
    image = open_image(source)
    return [frame.copy() for frame in ImageSequence.Iterator(image)]


def source_format(source: ImageSource) -> Optional[str]:
    """Pillow format name of an encoded source, if it can be told without decoding."""
    if isinstance(source, Image.Image):
        return source.format
    if isinstance(source, (str, Path)):
        suffix = Path(source).suffix
        if suffix:
            try:
                return normalize_format(suffix)[0]
            except ValueError:
                return None
    return None


def rotate_clockwise(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate by a multiple of 90 degrees, clockwise, resizing the canvas.

    90 and 270 swap width and height.
    """
    degrees %= 360
    if degrees == 0:
        return image
    transpose = {
        90: Image.Transpose.ROTATE_270,
        180: Image.Transpose.ROTATE_180,
        270: Image.Transpose.ROTATE_90,
    }.get(degrees)
    if transpose is None:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    return image.transpose(transpose)


def flip(image: Image.Image, horizontal: bool = False, vertical: bool = False) -> Image.Image:
    if horizontal:
        image = ImageOps.mirror(image)
    if vertical:
        image = ImageOps.flip(image)
    return image


def _enhanceable(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA", "L"):
        return image
    return image.convert("RGBA" if "A" in image.getbands() or image.mode == "P" else "RGB")


def adjust_colors(image: Image.Image, brightness: float = 0, contrast: float = 0, saturation: float = 0) -> Image.Image:
    """Apply brightness, contrast and saturation in percent (-100..100, 0 = neutral).

    Each value maps to an enhancement factor ``1 + value / 100``.
    """
    if not (brightness or contrast or saturation):
        return image
    image = _enhanceable(image)
    if brightness:
        image = ImageEnhance.Brightness(image).enhance(1 + brightness / 100)
    if contrast:
        image = ImageEnhance.Contrast(image).enhance(1 + contrast / 100)
    if saturation:
        image = ImageEnhance.Color(image).enhance(1 + saturation / 100)
    return image


def encode(image: Image.Image, pil_format: str, quality: float = 0.9, **save_kwargs) -> bytes:
    """Encode ``image`` into ``pil_format``. ``quality`` is in (0, 1]."""
    if pil_format in _NO_ALPHA and image.mode not in ("RGB", "L", "CMYK", "1"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    params = dict(save_kwargs)
    if pil_format in ("JPEG", "WEBP"):
        params.setdefault("quality", max(1, min(100, round(quality * 100))))
    image.save(buffer, format=pil_format, **params)
    return buffer.getvalue()
