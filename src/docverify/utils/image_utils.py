import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import cv2
import numpy as np
from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

from docverify.models import ImageFile
from docverify.utils.exceptions import ConversionError, ImageTooLarge, InputError, InvalidImageType

# Let Pillow open HEIC/HEIF photos straight from iPhones.
register_heif_opener()

logger = logging.getLogger(__name__)

ACCEPTED_IMAGE_SUBTYPES = ("jpeg", "jpg", "png", "heic", "heif")
HEIC_JPEG_QUALITY = 90
ROTATED_JPEG_QUALITY = 95

# Contrast curve for hologram-heavy ID cards
MID_GRAY = 128
DARKEN_FACTOR = 0.7
LIGHTEN_FACTOR = 0.5

_CV2_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


@dataclass
class FileValidation:
    valid: bool
    error: Optional[InputError] = None


def is_heic(file: ImageFile) -> bool:
    content_type = (file.content_type or "").lower()
    filename = (file.filename or "").lower()
    return (
        "heic" in content_type
        or "heif" in content_type
        or filename.endswith(".heic")
        or filename.endswith(".heif")
    )


def convert_heic_to_jpeg(file: ImageFile) -> ImageFile:
    """
    Convert a HEIC/HEIF upload to JPEG.

    Anything that is not HEIC is returned unchanged, so calling this twice is safe.

    Raises:
        ConversionError: If the HEIC payload cannot be decoded.
    """
    if not is_heic(file):
        return file

    try:
        image = Image.open(BytesIO(file.data))
        # multi-image HEIC containers: keep the primary image
        image.seek(0)
        buf = BytesIO()
        image.convert("RGB").save(buf, format="JPEG", quality=HEIC_JPEG_QUALITY)
    except Exception as e:
        logger.error("HEIC conversion error for %s: %s", file.filename, e)
        raise ConversionError() from e

    filename = re.sub(r"\.heic$", ".jpg", file.filename, flags=re.IGNORECASE)
    filename = re.sub(r"\.heif$", ".jpg", filename, flags=re.IGNORECASE)
    return ImageFile(filename=filename, content_type="image/jpeg", data=buf.getvalue())


def validate_image_file(file: ImageFile, max_size_mb: float = 5) -> FileValidation:
    """
    Check the MIME type and size of an upload without touching its pixels.

    Returns:
        FileValidation: ``valid`` plus the InvalidImageType / ImageTooLarge error
        describing why the file was rejected.
    """
    content_type = file.content_type or ""
    is_valid_image = any(subtype in content_type.lower() for subtype in ACCEPTED_IMAGE_SUBTYPES)

    if not content_type.startswith("image/") and not is_valid_image:
        return FileValidation(valid=False, error=InvalidImageType())

    max_size_bytes = max_size_mb * 1024 * 1024
    if file.size > max_size_bytes:
        return FileValidation(valid=False, error=ImageTooLarge(max_size_mb))

    return FileValidation(valid=True)


def bytes_to_cv2(image_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes to an OpenCV BGR ndarray.
    Falls back to PIL if cv2.imdecode fails.
    """
    arr = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        # fallback via PIL -> RGB -> BGR
        pil = Image.open(BytesIO(image_bytes))
        pil = ImageOps.exif_transpose(pil)
        img = cv2.cvtColor(np.array(pil.convert("RGB")), cv2.COLOR_RGB2BGR)
    return img


def rotate_image(img: np.ndarray, angle: int) -> np.ndarray:
    """Rotate clockwise about the centre; 90 and 270 swap width and height."""
    if angle == 0:
        return img.copy()
    try:
        return cv2.rotate(img, _CV2_ROTATIONS[angle])
    except KeyError:
        raise ValueError(f"Unsupported rotation angle: {angle}")


def encode_jpeg(img: np.ndarray, quality: int = ROTATED_JPEG_QUALITY) -> bytes:
    ok, buf = cv2.imencode('.jpg', np.ascontiguousarray(img), [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise RuntimeError("Failed to encode image for OCR")
    return buf.tobytes()


def enhance_contrast(img: np.ndarray) -> np.ndarray:
    """
    Grayscale plus a two-band contrast stretch.

    Pixels below mid-gray are darkened (x0.7); the rest are pulled halfway
    towards white. Hologram mid-tones fade while printed text stays dark.
    """
    bgr = img.astype(np.float64)
    gray = 0.299 * bgr[:, :, 2] + 0.587 * bgr[:, :, 1] + 0.114 * bgr[:, :, 0]
    enhanced = np.where(
        gray < MID_GRAY,
        gray * DARKEN_FACTOR,
        255 - (255 - gray) * LIGHTEN_FACTOR,
    )
    return np.clip(np.rint(enhanced), 0, 255).astype(np.uint8)


def preprocess_id_card_image(file: ImageFile) -> ImageFile:
    """Apply the ID card contrast curve and re-encode losslessly as PNG."""
    img = bytes_to_cv2(file.data)
    enhanced = enhance_contrast(img)
    ok, buf = cv2.imencode('.png', enhanced)
    if not ok:
        raise RuntimeError("Failed to encode preprocessed ID card image")
    logger.info("ID card image preprocessed for OCR (%dx%d)", img.shape[1], img.shape[0])
    return ImageFile(filename=file.filename, content_type="image/png", data=buf.tobytes())
