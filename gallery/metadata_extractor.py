"""
EXIF extraction for uploaded images.

Pulls dimensions and camera settings out of raw image bytes before they are
handed to the blob store:
- width, height
- camera_make, camera_model, lens
- focal_length, f_stop, shutter_speed, iso
- captured_at
"""

import io
import logging
from datetime import datetime
from typing import Any, Dict

from django.utils import timezone
from PIL import Image, UnidentifiedImageError
from PIL.ExifTags import TAGS

logger = logging.getLogger(__name__)

EXIF_IFD = 0x8769


def _ratio(value):
    """Return a float for IFDRational, (num, den) tuples or plain numbers."""
    if hasattr(value, "numerator") and hasattr(value, "denominator"):
        return float(value.numerator) / float(value.denominator) if value.denominator else None
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return float(value[0]) / float(value[1]) if value[1] else None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_shutter_speed(value) -> str:
    if hasattr(value, "numerator") and hasattr(value, "denominator"):
        if value.numerator == 1:
            return f"1/{int(value.denominator)}"
        seconds = _ratio(value)
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        if value[0] == 1:
            return f"1/{int(value[1])}"
        seconds = _ratio(value)
    else:
        seconds = _ratio(value)

    if seconds is None or seconds <= 0:
        return str(value)
    if seconds < 1:
        return f"1/{round(1 / seconds)}"
    return f"{seconds:g}s"


def _clean_str(value) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return str(value).replace("\x00", "").strip()


def _apply_tag(metadata: Dict[str, Any], tag, value):
    if tag == "Make":
        metadata["camera_make"] = _clean_str(value)
    elif tag == "Model":
        metadata["camera_model"] = _clean_str(value)
    elif tag == "LensModel":
        metadata["lens"] = _clean_str(value)
    elif tag == "FocalLength":
        focal = _ratio(value)
        if focal:
            metadata["focal_length"] = f"{focal:g}mm"
    elif tag in {"FNumber", "ApertureValue"}:
        aperture = _ratio(value)
        # FNumber wins over the APEX ApertureValue when both are present
        if aperture and (tag == "FNumber" or "f_stop" not in metadata):
            metadata["f_stop"] = f"f/{aperture:g}"
    elif tag == "ExposureTime":
        metadata["shutter_speed"] = format_shutter_speed(value)
    elif tag in {"ISOSpeedRatings", "ISO", "PhotographicSensitivity"}:
        try:
            metadata["iso"] = int(value[0] if isinstance(value, (tuple, list)) else value)
        except (TypeError, ValueError, IndexError):
            logger.debug("Ignoring unreadable ISO value %r", value)
    elif tag in {"DateTimeOriginal", "DateTime"}:
        # DateTimeOriginal (EXIF IFD) is read after DateTime and replaces it
        if tag == "DateTime" and "captured_at" in metadata:
            return
        try:
            naive_dt = datetime.strptime(_clean_str(value), "%Y:%m:%d %H:%M:%S")
        except ValueError:
            logger.debug("Ignoring unreadable capture date %r", value)
            return
        metadata["captured_at"] = timezone.make_aware(
            naive_dt, timezone.get_current_timezone()
        )


def extract_image_metadata(data: bytes, filename: str = "") -> Dict[str, Any]:
    """
    Extract dimensions and camera settings from image bytes.

    Unreadable images yield an empty dict; the upload itself is not rejected here.
    """
    metadata: Dict[str, Any] = {}

    try:
        with Image.open(io.BytesIO(data)) as img:
            metadata["width"], metadata["height"] = img.size

            exif = img.getexif()
            if not exif:
                logger.info("No EXIF data in %s", filename or "upload")
                return metadata

            items = list(exif.items())
            exif_ifd = exif.get_ifd(EXIF_IFD)
            if exif_ifd:
                items.extend(exif_ifd.items())

            for tag_id, value in items:
                _apply_tag(metadata, TAGS.get(tag_id, tag_id), value)

    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Could not read image metadata from %s: %s", filename or "upload", exc)
        return {}

    logger.info("Image metadata extracted for %s: %s fields", filename or "upload", len(metadata))
    return metadata
