from pathlib import Path

import cv2
import numpy as np

from readthis.core.config import settings

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}

COVER_WIDTH = 500
COVER_HEIGHT = 750


class ImageRejected(ValueError):
    pass


def validate_upload(data: bytes, filename: str | None, content_type: str | None) -> None:
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS or (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ImageRejected("Only JPEG, JPG, and PNG files are allowed!")
    if not data:
        raise ImageRejected("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise ImageRejected(f"File exceeds {max_mb:.0f}MB limit.")


def fit_cover(
    data: bytes,
    width: int = COVER_WIDTH,
    height: int = COVER_HEIGHT,
    quality: int = 80,
) -> bytes:
    """
    Scale the image so it fully covers width x height, crop the overflow
    around the center, and re-encode as JPEG.
    """
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ImageRejected("Could not decode image")

    src_h, src_w = img.shape[:2]
    scale = max(width / src_w, height / src_h)
    new_w = max(width, round(src_w * scale))
    new_h = max(height, round(src_h * scale))
    interp = cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
    resized = cv2.resize(img, (new_w, new_h), interpolation=interp)

    x0 = (new_w - width) // 2
    y0 = (new_h - height) // 2
    cropped = resized[y0 : y0 + height, x0 : x0 + width]

    ok, buf = cv2.imencode(".jpg", cropped, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ImageRejected("Could not encode image")
    return buf.tobytes()
