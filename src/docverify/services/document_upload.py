import logging
import time
import uuid
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Dict, List, Optional

from werkzeug.utils import secure_filename

from docverify.config.config import Config
from docverify.models import IdCardVerificationResult, ImageFile, LicenseTypes, LicenseVerificationResult
from docverify.services.document_verification import verify_id_card_image, verify_license_image
from docverify.services.ocr_engine import EngineFactory
from docverify.utils.exceptions import DocumentVerificationError, StorageError
from docverify.utils.extraction_tools import MIN_ID_CARD_PATTERNS
from docverify.utils.image_utils import convert_heic_to_jpeg, validate_image_file

logger = logging.getLogger(__name__)

LICENSE_FOLDER = "licenses"
ID_CARD_FOLDER = "id-cards"
WARNING_DURATION_MS = 20000

VARIANT_SUCCESS = "success"
VARIANT_WARNING = "warning"
VARIANT_DESTRUCTIVE = "destructive"

# Short names used in upload messages
LICENSE_SHORT_NAMES = [
    ("tsl_a", "TSL-A"),
    ("tsl_a_special", "TSL-A (special)"),
    ("tsl_b", "TSL-B"),
    ("hunting", "Hunting"),
    ("collectors_a", "Collectors-A"),
    ("collectors_a_special", "Collectors-A (special)"),
]


@dataclass
class UserNotice:
    variant: str
    title: str
    messages: List[str] = field(default_factory=list)
    duration: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "variant": self.variant,
            "title": self.title,
            "messages": list(self.messages),
            "duration": self.duration,
        }


@dataclass
class LicenseUploadResult:
    success: bool
    is_verified: bool = False
    public_url: Optional[str] = None
    license_types: LicenseTypes = field(default_factory=LicenseTypes)
    expiry_date: Optional[str] = None
    has_verification_issues: bool = False
    verification_issues: List[str] = field(default_factory=list)
    notice: Optional[UserNotice] = None
    verification: Optional[LicenseVerificationResult] = None

    @property
    def needs_manual_review(self) -> bool:
        return self.success and not self.is_verified

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "publicUrl": self.public_url,
            "isVerified": self.is_verified,
            "licenseTypes": self.license_types.to_dict(),
            "expiryDate": self.expiry_date,
            "hasVerificationIssues": self.has_verification_issues,
            "verificationIssues": list(self.verification_issues),
            "notice": self.notice.to_dict() if self.notice else None,
        }


@dataclass
class IdCardUploadResult:
    success: bool
    is_verified: bool = False
    public_url: Optional[str] = None
    verification_issues: List[str] = field(default_factory=list)
    notice: Optional[UserNotice] = None
    verification: Optional[IdCardVerificationResult] = None

    @property
    def needs_manual_review(self) -> bool:
        return self.success and not self.is_verified

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "publicUrl": self.public_url,
            "isVerified": self.is_verified,
            "verificationIssues": list(self.verification_issues),
            "notice": self.notice.to_dict() if self.notice else None,
        }


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _reporter(on_progress: Optional[Callable[[int], None]]) -> Callable[[int], None]:
    """Wrap the caller's progress callback so reported values never go backwards."""
    last = [0]

    def report(value: int) -> None:
        if value < last[0]:
            return
        last[0] = value
        if on_progress:
            on_progress(value)

    return report


def _object_key(folder: str, prefix: str, file: ImageFile) -> str:
    # the client filename only contributes its extension, stripped of path characters
    name = secure_filename(file.filename or "")
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    extension = extension or "jpg"
    return f"{folder}/{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}.{extension}"


def _store(storage, file: ImageFile, key: str) -> None:
    if not storage.upload_object(BytesIO(file.data), key, file.content_type or "application/octet-stream"):
        raise StorageError()


def _failure_message(error: Exception, default: str) -> str:
    if isinstance(error, DocumentVerificationError):
        return str(error)
    logger.exception("Unexpected upload failure")
    return default


def detected_licenses_message(license_types: LicenseTypes) -> str:
    detected = [label for name, label in LICENSE_SHORT_NAMES if getattr(license_types, name)]
    if detected:
        return f"Detected licenses: {', '.join(detected)}"
    return "No license types detected. Please contact support."


def license_verification_issues(result: LicenseVerificationResult, first_name: str, last_name: str) -> List[str]:
    issues: List[str] = []
    if result.is_expired and result.expiry_date:
        issues.append(f"• License expired on {result.expiry_date}")
    if not result.name_match and result.extracted_name:
        issues.append(
            f"• Name mismatch: the license shows a different name than the one on your profile "
            f"\"{first_name} {last_name}\""
        )
    if not result.has_header:
        issues.append("• Not recognized as a valid Malta firearms license")
    return issues


def id_card_verification_issues(result: IdCardVerificationResult, first_name: str, last_name: str) -> List[str]:
    if result.is_verified:
        return []
    if not result.name_match and result.extracted_name:
        return [
            f"Name mismatch: the ID card shows a different name than the one on your profile "
            f"\"{first_name} {last_name}\""
        ]
    if result.pattern_matches >= MIN_ID_CARD_PATTERNS:
        return ["The name on the ID card could not be read"]
    return ["Not recognized as a valid Malta ID card - missing required text or format"]


def _license_notice(result: LicenseVerificationResult, issues: List[str]) -> UserNotice:
    licenses_message = detected_licenses_message(result.license_types)
    if issues:
        return UserNotice(
            variant=VARIANT_WARNING,
            title="License uploaded - manual verification required",
            messages=issues + [
                licenses_message,
                "Your license will require manual verification by an administrator.",
            ],
            duration=WARNING_DURATION_MS,
        )
    if result.is_verified:
        messages = [f"Valid until {result.expiry_date}."] if result.expiry_date else []
        return UserNotice(
            variant=VARIANT_SUCCESS,
            title="License uploaded and verified",
            messages=messages + [licenses_message],
        )
    return UserNotice(
        variant=VARIANT_WARNING,
        title="License uploaded",
        messages=[
            "Your license has been uploaded but could not be automatically verified.",
            licenses_message,
            "Your license will be reviewed by an administrator.",
        ],
        duration=WARNING_DURATION_MS,
    )


def _id_card_notice(is_verified: bool, issues: List[str]) -> UserNotice:
    if is_verified:
        return UserNotice(
            variant=VARIANT_SUCCESS,
            title="ID card verified & uploaded",
            messages=["Your ID card has been verified successfully."],
        )
    return UserNotice(
        variant=VARIANT_WARNING,
        title="ID card uploaded - manual verification required",
        messages=[f"• {issue}" for issue in issues] + [
            "Your ID card will require manual verification by an administrator.",
        ],
        duration=WARNING_DURATION_MS,
    )


# ------------------------------------------------------------
# Coordinators
# ------------------------------------------------------------

def upload_and_verify_license(
    file: ImageFile,
    first_name: Optional[str],
    last_name: Optional[str],
    storage,
    on_progress: Optional[Callable[[int], None]] = None,
    engine_factory: Optional[EngineFactory] = None,
    max_size_mb: Optional[float] = None,
) -> LicenseUploadResult:
    """
    Validate, verify and store a firearms license photo.

    A license that fails verification is still stored; the result lists the
    issues so an administrator can review it. Only invalid files, failed
    HEIC conversion and storage errors stop the upload (``success=False``).
    Nothing is raised to the caller.
    """
    progress = _reporter(on_progress)
    max_size_mb = max_size_mb or Config.MAX_UPLOAD_SIZE_MB
    try:
        progress(0)
        validation = validate_image_file(file, max_size_mb)
        if not validation.valid:
            logger.info("Rejected license upload %s: %s", file.filename, validation.error)
            return LicenseUploadResult(
                success=False,
                notice=UserNotice(VARIANT_DESTRUCTIVE, "Invalid file", [str(validation.error)]),
            )
        progress(10)

        converted = convert_heic_to_jpeg(file)
        progress(30)

        verification = verify_license_image(converted, first_name, last_name, engine_factory=engine_factory)
        progress(70)

        issues = license_verification_issues(verification, first_name, last_name)
        progress(80)

        key = _object_key(LICENSE_FOLDER, "license", converted)
        _store(storage, converted, key)
        progress(95)

        public_url = storage.public_url(key)
        progress(100)

        logger.info("License stored at %s (verified=%s, issues=%d)", key, verification.is_verified, len(issues))
        return LicenseUploadResult(
            success=True,
            is_verified=verification.is_verified,
            public_url=public_url,
            license_types=verification.license_types,
            expiry_date=verification.expiry_date,
            has_verification_issues=bool(issues),
            verification_issues=issues,
            notice=_license_notice(verification, issues),
            verification=verification,
        )
    except Exception as e:
        message = _failure_message(e, "Failed to upload license.")
        return LicenseUploadResult(
            success=False,
            notice=UserNotice(VARIANT_DESTRUCTIVE, "Upload failed", [message]),
        )


def upload_and_verify_id_card(
    file: ImageFile,
    first_name: str,
    last_name: str,
    storage,
    on_progress: Optional[Callable[[int], None]] = None,
    engine_factory: Optional[EngineFactory] = None,
    max_size_mb: Optional[float] = None,
) -> IdCardUploadResult:
    """
    Validate, verify and store an identity card photo.

    Unlike licenses, an ID card that cannot be processed is not stored: the
    verification error ends the upload with ``success=False``. A card that
    was read but did not match is stored for manual review.
    """
    progress = _reporter(on_progress)
    max_size_mb = max_size_mb or Config.MAX_UPLOAD_SIZE_MB
    try:
        progress(0)
        validation = validate_image_file(file, max_size_mb)
        if not validation.valid:
            logger.info("Rejected ID card upload %s: %s", file.filename, validation.error)
            return IdCardUploadResult(
                success=False,
                notice=UserNotice(VARIANT_DESTRUCTIVE, "Invalid file", [str(validation.error)]),
            )
        progress(10)

        converted = convert_heic_to_jpeg(file)
        progress(30)
        progress(40)

        verification = verify_id_card_image(
            converted,
            first_name,
            last_name,
            on_progress=progress,
            engine_factory=engine_factory,
        )
        progress(70)

        issues = id_card_verification_issues(verification, first_name, last_name)
        progress(80)

        key = _object_key(ID_CARD_FOLDER, "id-card", converted)
        _store(storage, converted, key)
        progress(95)

        public_url = storage.public_url(key)
        progress(100)

        logger.info("ID card stored at %s (verified=%s)", key, verification.is_verified)
        return IdCardUploadResult(
            success=True,
            is_verified=verification.is_verified,
            public_url=public_url,
            verification_issues=issues,
            notice=_id_card_notice(verification.is_verified, issues),
            verification=verification,
        )
    except Exception as e:
        message = _failure_message(e, "Failed to upload ID card.")
        return IdCardUploadResult(
            success=False,
            notice=UserNotice(VARIANT_DESTRUCTIVE, "Upload failed", [message]),
        )
