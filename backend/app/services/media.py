from __future__ import annotations
from PIL import Image, UnidentifiedImageError
import io


ALLOWED_MIME = {"image/jpeg", "image/png"}
EXT_FOR_MIME = {"image/jpeg": "jpg", "image/png": "png"}


class InvalidImage(ValueError):
    pass


def sniff_mime(data: bytes) -> str | None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format == "JPEG":
                return "image/jpeg"
            elif img.format == "PNG":
                return "image/png"
            return None
    except Exception:
        return None

def validate_image(data: bytes, max_bytes: int, label: str = "image") -> str:
    """
    Check an uploaded proof image and return its mime type.
    Raises InvalidImage for empty, oversized, non JPEG/PNG or corrupt data.
    """
    if not data:
        raise InvalidImage(f"{label} is empty")
    if len(data) > max_bytes:
        raise InvalidImage(f"{label} exceeds {max_bytes // (1024 * 1024)}MB limit")
    mime = sniff_mime(data)
    if mime not in ALLOWED_MIME:
        raise InvalidImage(f"{label} must be a PNG or JPEG image")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()  # basic integrity
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise InvalidImage(f"{label} is not a valid image file")
    return mime

def image_dimensions(data: bytes) -> tuple[int, int] | None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except Exception:
        return None

def ext_for_mime(mime: str) -> str:
    return EXT_FOR_MIME.get(mime, "bin")
