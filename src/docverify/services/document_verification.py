import base64
import logging
import re
import threading
from datetime import date
from typing import Callable, Optional

from docverify.models import (
    IdCardVerificationResult,
    ImageFile,
    LicenseVerificationResult,
    NameMatchDetails,
    ORIENTATION_CORRECT,
    ORIENTATION_ROTATED,
    ORIENTATION_UNKNOWN,
)
from docverify.services.license_categories import detect_license_types
from docverify.services.ocr_engine import EngineFactory
from docverify.services.orientation import find_best_orientation
from docverify.utils.exceptions import VerificationCancelled, VerificationError
from docverify.utils.extraction_tools import (
    MIN_ID_CARD_PATTERNS,
    check_expiration_date,
    count_id_card_patterns,
    extract_id_card_name,
    verify_id_card_name,
    verify_name,
)
from docverify.utils.image_utils import convert_heic_to_jpeg, preprocess_id_card_image

logger = logging.getLogger(__name__)

POLICE_HEADER = "POLICE GENERAL HEADQUARTERS"
LICENSE_KEYWORDS = re.compile(r"police|valid|headquarters|license|firearms", re.I)
CORRECT_ORIENTATION_SCORE = 70
ROTATED_ORIENTATION_SCORE = 40

# ID card progress milestones (the orientation search reports 48-68)
PROGRESS_PREPROCESS = 42
PROGRESS_ORIENTATION = 45


def _orientation_status(score: float, text: str) -> str:
    has_keywords = bool(LICENSE_KEYWORDS.search(text))
    if score > CORRECT_ORIENTATION_SCORE and has_keywords:
        return ORIENTATION_CORRECT
    if score < ROTATED_ORIENTATION_SCORE and not has_keywords:
        return ORIENTATION_ROTATED
    return ORIENTATION_UNKNOWN


def _data_url(image: bytes, content_type: str = "image/jpeg") -> str:
    return f"data:{content_type};base64," + base64.b64encode(image).decode("ascii")


def verify_license_image(
    file: ImageFile,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    engine_factory: Optional[EngineFactory] = None,
    today: Optional[date] = None,
    cancel_event: Optional[threading.Event] = None,
) -> LicenseVerificationResult:
    """
    Verify a photographed Maltese firearms license.

    The license is verified when the police header is present, it has not
    expired, and the holder name matches the profile (when a profile name is
    given). Failures inside verification never raise: they are logged and a
    conservative result (not verified, expired) is returned so the upload can
    still go to manual review. Only cancellation is raised.

    Args:
        file: The uploaded image.
        first_name: Profile first name, optional.
        last_name: Profile last name, optional.
        engine_factory: Creates the OCR engine (Tesseract by default).
        today: Reference date for the expiry check.
        cancel_event: Set it to stop the OCR passes early.

    Returns:
        LicenseVerificationResult
    """
    try:
        if file is None or not file.data:
            raise ValueError("No file provided")

        normalized = convert_heic_to_jpeg(file)
        best = find_best_orientation(normalized, engine_factory=engine_factory, cancel_event=cancel_event)
        text = best.text

        has_header = POLICE_HEADER in text
        expiry = check_expiration_date(text, today=today)
        name = verify_name(text, first_name, last_name)
        license_types = detect_license_types(text)

        no_profile_name = not (first_name or "").strip() or not (last_name or "").strip()
        is_verified = has_header and not expiry.is_expired and (name.name_match or no_profile_name)

        logger.info(
            "License verification: verified=%s header=%s expired=%s name_match=%s rotation=%s°",
            is_verified, has_header, expiry.is_expired, name.name_match, best.angle,
        )
        return LicenseVerificationResult(
            is_verified=is_verified,
            text=text,
            is_expired=expiry.is_expired,
            expiry_date=expiry.expiry_date,
            orientation=_orientation_status(best.score, text),
            rotation_angle=best.angle,
            corrected_image_url=_data_url(best.image, best.content_type),
            has_date=expiry.has_date,
            has_header=has_header,
            confidence=best.score,
            name_match=name.name_match,
            extracted_name=name.extracted_name,
            name_match_details=name.details,
            license_types=license_types,
        )
    except VerificationCancelled:
        raise
    except Exception:
        logger.exception("License verification error")
        return LicenseVerificationResult.failed()


def verify_id_card_image(
    file: ImageFile,
    first_name: str,
    last_name: str,
    on_progress: Optional[Callable[[int], None]] = None,
    engine_factory: Optional[EngineFactory] = None,
    cancel_event: Optional[threading.Event] = None,
) -> IdCardVerificationResult:
    """
    Verify a photographed Maltese identity card against the profile name.

    The card is verified when at least two of the eleven ID card text
    patterns are found and the name on the card matches the profile.

    Raises:
        VerificationError: If the image could not be processed at all. An
            unverifiable ID card must stop the upload.
        VerificationCancelled: If ``cancel_event`` was set.
    """
    try:
        if file is None or not file.data:
            raise ValueError("No file provided")

        logger.info("Starting ID card verification")
        if on_progress:
            on_progress(PROGRESS_PREPROCESS)
        preprocessed = preprocess_id_card_image(convert_heic_to_jpeg(file))

        if on_progress:
            on_progress(PROGRESS_ORIENTATION)
        best = find_best_orientation(
            preprocessed,
            engine_factory=engine_factory,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
        text = best.text
        logger.info("Best orientation: %s°, score: %.1f", best.angle, best.score)
        logger.debug("ID card OCR text: %r", text[:500])

        pattern_matches = count_id_card_patterns(text)
        logger.info("ID card pattern matches: %d/11", pattern_matches)
        if pattern_matches < MIN_ID_CARD_PATTERNS:
            logger.warning("Not a valid Malta ID card - missing required header text")
            return IdCardVerificationResult(
                is_verified=False,
                text=text,
                name_match=False,
                extracted_name=None,
                pattern_matches=pattern_matches,
            )

        extracted_name = extract_id_card_name(text)
        name_match = False
        details = None
        if extracted_name and first_name and last_name:
            name_match, similarity = verify_id_card_name(extracted_name, first_name, last_name)
            details = NameMatchDetails(
                extracted_name=extracted_name,
                profile_name=f"{first_name} {last_name}",
                similarity_score=similarity,
            )

        return IdCardVerificationResult(
            is_verified=pattern_matches >= MIN_ID_CARD_PATTERNS and name_match,
            text=text,
            name_match=name_match,
            extracted_name=extracted_name,
            name_match_details=details,
            pattern_matches=pattern_matches,
        )
    except VerificationCancelled:
        raise
    except Exception as e:
        logger.error("Error verifying ID card: %s", e)
        raise VerificationError() from e
