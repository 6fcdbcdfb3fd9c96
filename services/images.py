"""
File-to-data-URL encoding for image fields on the submission page.

Mirrors what the embed bundle does in the browser: decode the chosen file,
downscale so neither side exceeds maxDimension, and return a data URL.
"""
import asyncio
import base64
import io
import logging
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("backend.images")

# Guard against decompression bombs (~64 MPx)
Image.MAX_IMAGE_PIXELS = 64_000_000

# Pre-decode cap for uploaded images (20MB)
MAX_UPLOAD_BYTES = 20 * 1024 * 1024

_FORMAT_MIMES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


def _to_data_url(data: bytes, max_dimension: int) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            fmt = (im.format or "PNG").upper()
            mime = _FORMAT_MIMES.get(fmt)
            if mime is None:
                # Re-encode anything exotic as PNG
                fmt, mime = "PNG", "image/png"
            if im.width <= max_dimension and im.height <= max_dimension and fmt == (im.format or "").upper():
                return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"

            if im.width > max_dimension or im.height > max_dimension:
                if im.width > im.height:
                    size = (max_dimension, max(1, round(im.height / im.width * max_dimension)))
                else:
                    size = (max(1, round(im.width / im.height * max_dimension)), max_dimension)
                im = im.resize(size)
            if fmt == "JPEG" and im.mode not in ("RGB", "L"):
                im = im.convert("RGB")
            out = io.BytesIO()
            im.save(out, format=fmt)
            return f"data:{mime};base64,{base64.b64encode(out.getvalue()).decode('ascii')}"
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        # Undecodable or oversized files count as no file
        logger.info("Ignoring upload that is not a decodable image: %s", e)
        return None


async def encode_upload(upload: Optional[UploadFile], max_dimension: int) -> Optional[str]:
    """Read an uploaded file and return it as a (downscaled) image data URL.

    Returns None when no file was chosen or the bytes cannot be decoded.
    """
    if upload is None or not getattr(upload, "filename", None):
        return None
    data = await upload.read()
    if not data or len(data) > MAX_UPLOAD_BYTES:
        return None
    return await asyncio.to_thread(_to_data_url, data, max_dimension)
