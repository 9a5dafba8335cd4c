"""
License categories.

``detect_license_types`` reads the license categories printed on a Maltese
firearms license; the rest of the module maps those categories to the
listing categories a holder may buy or sell.
"""
import logging
import re
from typing import Dict, List, Optional

from docverify.models import LicenseTypes

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Text patterns
# ------------------------------------------------------------

TSL_A_SPECIAL_PATTERNS = [
    r"ts[al].*target.*shooter.*spec[ia]",
    r"target.*shooter.*spec[ia]",
    r"licenz[jz]a.*specjal",
]
TSL_A_PATTERNS = [
    r"target.*shooter.*a\b",
    r"long.*short.*firearm",
]
TSL_B_PATTERNS = [
    r"target.*shooter.*b",
    r"s/gun",
]
HUNTING_PATTERNS = [
    r"hunting",
    r"kac[cq]a",
]
COLLECTORS_A_SPECIAL_PATTERNS = [
    r"collector.*licen[cs]e.*a.*spec[ia]",
    r"kollezz.*specjal",
]
COLLECTORS_A_PATTERNS = [
    r"collector.*licen[cs]e.*a\b",
    r"gh[ao]z[- ]?[sz]amma",
    r"kollezz[jz]oni",
]


def _matches_any(patterns: List[str], text: str) -> bool:
    return any(re.search(pattern, text, re.I) for pattern in patterns)


def detect_license_types(text: str) -> LicenseTypes:
    """
    Classify the license categories mentioned in the OCR text.

    The special variants of TSL-A and Collectors-A are decided first; the
    base category is only looked for when its special variant is absent, so
    the two can never both be set.
    """
    normalized = (text or "").lower()

    tsl_a_special = _matches_any(TSL_A_SPECIAL_PATTERNS, normalized)
    tsl_a = not tsl_a_special and _matches_any(TSL_A_PATTERNS, normalized)

    collectors_a_special = _matches_any(COLLECTORS_A_SPECIAL_PATTERNS, normalized)
    collectors_a = not collectors_a_special and _matches_any(COLLECTORS_A_PATTERNS, normalized)

    types = LicenseTypes(
        tsl_a=tsl_a,
        tsl_a_special=tsl_a_special,
        tsl_b=_matches_any(TSL_B_PATTERNS, normalized),
        hunting=_matches_any(HUNTING_PATTERNS, normalized),
        collectors_a=collectors_a,
        collectors_a_special=collectors_a_special,
    )
    logger.info("Detected license types: %s", ", ".join(get_active_licenses(types)) or "none")
    return types


# ------------------------------------------------------------
# Listing categories
# ------------------------------------------------------------

PISTOLS = "Pistols"
REVOLVERS = "Revolvers"
RIFLES = "Rifles"
CARBINES = "Carbines"
SHOTGUNS = "Shotguns"
BLACKPOWDER = "Black powder"
CROSSBOW = "Crossbow"
AIRGUNS = "Airguns"
AMMUNITION = "Ammunition"
AUTOMATIC = "Schedule 1 (automatic)"
REPLICA = "Replica or Deactivated"

FIREARM_CATEGORIES = [
    PISTOLS, REVOLVERS, RIFLES, CARBINES, SHOTGUNS, BLACKPOWDER,
    CROSSBOW, AIRGUNS, AMMUNITION, AUTOMATIC, REPLICA,
]

LICENSE_CATEGORY_MAP: Dict[str, List[str]] = {
    "tsl_a": [PISTOLS, REVOLVERS, RIFLES, CARBINES],
    "tsl_a_special": [PISTOLS, REVOLVERS, RIFLES],
    "tsl_b": [SHOTGUNS, BLACKPOWDER, CROSSBOW, AIRGUNS],
    "hunting": [SHOTGUNS],
    # everything except Schedule 1
    "collectors_a": [
        PISTOLS, REVOLVERS, RIFLES, CARBINES, SHOTGUNS,
        BLACKPOWDER, CROSSBOW, AIRGUNS, AMMUNITION,
    ],
    "collectors_a_special": [
        PISTOLS, REVOLVERS, RIFLES, CARBINES, SHOTGUNS,
        BLACKPOWDER, CROSSBOW, AIRGUNS, AMMUNITION, AUTOMATIC,
    ],
}

LICENSE_DISPLAY_NAMES = {
    "tsl_a": "TSL - A",
    "tsl_a_special": "TSL - A (special)",
    "tsl_b": "TSL - B",
    "hunting": "Hunting",
    "collectors_a": "Collectors - A",
    "collectors_a_special": "Collectors - A (special)",
}


def _held(license_types: LicenseTypes) -> List[str]:
    return [name for name in LICENSE_CATEGORY_MAP if getattr(license_types, name)]


def get_allowed_categories(license_types: Optional[LicenseTypes]) -> List[str]:
    """Categories a user may list; users without a license can only list replicas."""
    if license_types is None:
        return [REPLICA]

    allowed = set()
    if license_types.has_any():
        allowed.add(REPLICA)
    for name in _held(license_types):
        allowed.update(LICENSE_CATEGORY_MAP[name])
    return sorted(allowed)


def can_view_seller_info(license_types: Optional[LicenseTypes], category: str) -> bool:
    if license_types is None:
        return False
    if category == REPLICA:
        return license_types.has_any()
    return category in get_allowed_categories(license_types)


def get_required_licenses(category: str) -> List[str]:
    if category == REPLICA:
        return ["Any firearms license"]
    return [
        format_license_name(name)
        for name, categories in LICENSE_CATEGORY_MAP.items()
        if category in categories
    ]


def format_license_name(license_type: str) -> str:
    return LICENSE_DISPLAY_NAMES[license_type]


def get_active_licenses(license_types: Optional[LicenseTypes]) -> List[str]:
    if license_types is None:
        return []
    return [format_license_name(name) for name in _held(license_types)]
