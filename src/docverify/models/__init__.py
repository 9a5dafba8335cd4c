from .ImageFile import ImageFile
from .VerificationResult import (
    ExpiryCheck,
    IdCardVerificationResult,
    LicenseTypes,
    LicenseVerificationResult,
    NameMatchDetails,
    NameVerification,
    ORIENTATION_CORRECT,
    ORIENTATION_ROTATED,
    ORIENTATION_UNKNOWN,
)

__all__ = [
    "ImageFile",
    "ExpiryCheck",
    "IdCardVerificationResult",
    "LicenseTypes",
    "LicenseVerificationResult",
    "NameMatchDetails",
    "NameVerification",
    "ORIENTATION_CORRECT",
    "ORIENTATION_ROTATED",
    "ORIENTATION_UNKNOWN",
]
