import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from docverify.models import ImageFile
from docverify.services.ocr_engine import EngineFactory, default_engine_factory
from docverify.utils.exceptions import VerificationCancelled
from docverify.utils.image_utils import bytes_to_cv2, encode_jpeg, rotate_image

logger = logging.getLogger(__name__)

ROTATION_ANGLES = (0, 90, 180, 270)

ORIENTATION_KEYWORDS = [
    "police",
    "valid",
    "headquarters",
    "license",
    "firearms",
    "malta",
]
KEYWORD_BONUS = 5

# Progress milestones reported while the four rotations are scanned
PROGRESS_START = 48
PROGRESS_STEP = 5
PROGRESS_DONE = 68


@dataclass
class OrientationCandidate:
    angle: int
    image: bytes
    content_type: str
    text: str
    confidence: float
    keyword_score: int

    @property
    def combined_score(self) -> float:
        return self.confidence + self.keyword_score


@dataclass
class OrientationResult:
    image: bytes
    angle: int
    score: float
    text: str
    confidence: float
    content_type: str = "image/jpeg"


def keyword_score(text: str) -> int:
    lowered = (text or "").lower()
    matches = sum(1 for keyword in ORIENTATION_KEYWORDS if keyword in lowered)
    return matches * KEYWORD_BONUS


def find_best_orientation(
    file: ImageFile,
    engine_factory: Optional[EngineFactory] = None,
    on_progress: Optional[Callable[[int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> OrientationResult:
    """
    OCR the image at 0, 90, 180 and 270 degrees and keep the most plausible reading.

    Every angle is always tried. A rotation replaces the current best only if
    its combined score (OCR confidence + keyword bonus) is strictly higher, so
    ties go to the earlier angle.

    Args:
        file: The image to scan.
        engine_factory: Creates the OCR engine used for the four passes.
        on_progress: Receives 48, 53, 58, 63 before each pass and 68 at the end.
        cancel_event: Checked before every pass; when set the search stops
            with VerificationCancelled.

    Returns:
        OrientationResult: winning image bytes and type, angle, combined score and text.
    """
    factory = engine_factory or default_engine_factory
    original = bytes_to_cv2(file.data)
    best: Optional[OrientationCandidate] = None
    tried: List[str] = []

    with factory() as engine:
        for i, angle in enumerate(ROTATION_ANGLES):
            if cancel_event is not None and cancel_event.is_set():
                raise VerificationCancelled()
            if on_progress:
                on_progress(PROGRESS_START + i * PROGRESS_STEP)

            if angle == 0:
                # the upright pass reads the input exactly as given (lossless PNG for ID cards)
                image, content_type = file.data, file.content_type or "image/jpeg"
            else:
                image, content_type = encode_jpeg(rotate_image(original, angle)), "image/jpeg"
            result = engine.recognize(image)
            candidate = OrientationCandidate(
                angle=angle,
                image=image,
                content_type=content_type,
                text=result.text,
                confidence=result.confidence,
                keyword_score=keyword_score(result.text),
            )
            tried.append(f"{angle}°={candidate.combined_score:.1f}")

            if best is None or candidate.combined_score > best.combined_score:
                best = candidate

    if on_progress:
        on_progress(PROGRESS_DONE)

    logger.info("Orientation scores: %s -> best %s°", ", ".join(tried), best.angle)
    return OrientationResult(
        image=best.image,
        angle=best.angle,
        score=best.combined_score,
        text=best.text,
        confidence=best.confidence,
        content_type=best.content_type,
    )
