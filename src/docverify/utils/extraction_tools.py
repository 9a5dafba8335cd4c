# File: src/docverify/utils/extraction_tools.py
"""
Field extractors that work on raw OCR text: expiry dates, license holder
names and ID card names, plus the name checks built on them.

Everything here is line-oriented and tolerant of OCR noise. The keyword
lists and thresholds are tuned against Maltese police licenses and
identity cards.
"""
import logging
import re
from datetime import date, timedelta
from typing import List, Optional

from docverify.models import ExpiryCheck, NameMatchDetails, NameVerification
from docverify.utils.name_matching import (
    calculate_string_similarity,
    levenshtein_distance,
    normalize_string,
    to_percent,
    tokens_match_name,
    within_edit_tolerance,
)

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Expiry date
# ------------------------------------------------------------

_DATE = r"\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}"

EXPIRY_PATTERNS = [
    (re.compile(r"Valida\s*sa\s*[:.]?\s*(" + _DATE + ")", re.I), "Valida sa:"),
    (re.compile(r"Valid\s*sa\s*[:.]?\s*(" + _DATE + ")", re.I), "Valid sa:"),
    (re.compile(r"Valid\s*till\s*[:.]?\s*(" + _DATE + ")", re.I), "Valid till:"),
    (re.compile(r"Expir(?:es|y)\s*[:.]?\s*(" + _DATE + ")", re.I), "Expiry:"),
    (re.compile(r"(?:valida|valid)[^\d]{0,20}(" + _DATE + ")", re.I), "valida/valid (loose)"),
]
EXPIRY_LABEL = re.compile(r"Valida\s*sa|Valid\s*(?:sa|till|until)|Expir", re.I)
DATE_TOKEN = re.compile("(" + _DATE + ")")
FULL_DATE_TOKEN = re.compile(r"\d{2}[/.\-]\d{2}[/.\-]\d{4}")
LINES_AFTER_EXPIRY_LABEL = 2


def find_expiry_date_string(text: str) -> Optional[str]:
    """Locate the expiry date token; labelled patterns, then label lines, then the last full date."""
    for regex, name in EXPIRY_PATTERNS:
        match = regex.search(text)
        if match and match.group(1):
            logger.info("License expiry date found: %s using pattern: %s", match.group(1), name)
            return match.group(1)

    logger.debug("Pattern matching failed, trying line-by-line search")
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if not EXPIRY_LABEL.search(line):
            continue
        logger.debug("Found expiry label at line %d: %r", i, line)

        match = DATE_TOKEN.search(line)
        if match:
            logger.info("Expiry date found on the label line: %s", match.group(1))
            return match.group(1)

        for j in range(i + 1, min(i + 1 + LINES_AFTER_EXPIRY_LABEL, len(lines))):
            match = DATE_TOKEN.search(lines[j].strip())
            if match:
                logger.info("Expiry date found %d line(s) after the label: %s", j - i, match.group(1))
                return match.group(1)

    all_dates = FULL_DATE_TOKEN.findall(text)
    if all_dates:
        # the expiry usually follows the issue date
        logger.warning("Using fallback, last date found: %s", all_dates[-1])
        return all_dates[-1]

    return None


def parse_date(date_str: str) -> Optional[date]:
    """Parse DD/MM/YYYY (or . and - separators, 2-digit years) the Maltese way."""
    parts = re.split(r"[/.\-]", date_str)
    if len(parts) != 3:
        logger.error("Invalid date format: %s", date_str)
        return None

    try:
        day, month, year = (int(part) for part in parts)
    except ValueError:
        logger.error("Invalid date format: %s", date_str)
        return None

    if year < 100:
        year = 2000 + year if year < 50 else 1900 + year

    if day < 1 or day > 31 or month < 1 or month > 12:
        logger.error("Invalid date parts parsed: day=%s, month=%s, year=%s", day, month, year)
        return None

    # days past the end of the month roll over, so 31/04 is read as 01/05
    return date(year, month, 1) + timedelta(days=day - 1)


def check_expiration_date(text: str, today: Optional[date] = None) -> ExpiryCheck:
    """
    Find and evaluate the expiry date printed on a license.

    A missing or unreadable date is not treated as expired. A license that
    expires today is still valid.

    Args:
        text: OCR text of the license.
        today: Reference date, defaults to the local calendar date.

    Returns:
        ExpiryCheck: is_expired, expiry_date (YYYY-MM-DD) and has_date.
    """
    date_str = find_expiry_date_string(text or "")
    if not date_str:
        logger.warning("No expiry date found in license text")
        logger.debug("Text searched (first 500 chars): %r", (text or "")[:500])
        return ExpiryCheck(is_expired=False, expiry_date=None, has_date=False)

    expiry = parse_date(date_str)
    if expiry is None:
        return ExpiryCheck(is_expired=False, expiry_date=None, has_date=False)

    today = today or date.today()
    is_expired = expiry < today
    logger.info("License expiry check: expiry=%s today=%s expired=%s", expiry.isoformat(), today.isoformat(), is_expired)
    return ExpiryCheck(is_expired=is_expired, expiry_date=expiry.isoformat(), has_date=True)


# ------------------------------------------------------------
# License holder name
# ------------------------------------------------------------

LICENSE_NAME_LABEL = re.compile(r"Isem u Kunjom|Name and Surname", re.I)
LICENSE_NAME_LABEL_PREFIX = re.compile(r".*(?:Isem u Kunjom|Name and Surname)[:\s]*", re.I)
RELATIONSHIP_SPLIT = re.compile(r"\s+(?:bin|bint|son|daughter)\s+", re.I)
RELATIONSHIP_ONLY = re.compile(r"^(bin|bint|son|daughter)$", re.I)
LICENSE_NAME_NOISE = re.compile(r"(residing|li jogghod|address|karta|id card)", re.I)
LINES_BEFORE_NAME_LABEL = 2
LINES_AFTER_NAME_LABEL = 3


def is_valid_license_name(candidate: str) -> bool:
    if not candidate or len(candidate) < 5:
        return False
    words = [w for w in re.split(r"\s+", candidate) if len(w) > 1]
    if len(words) < 2:
        return False
    if not re.fullmatch(r"[A-Za-z\s]+", candidate):
        return False
    if RELATIONSHIP_ONLY.match(candidate):
        return False
    if LICENSE_NAME_NOISE.search(candidate):
        return False
    return True


def extract_license_name(text: str) -> Optional[str]:
    """
    Find the holder name near the "Isem u Kunjom / Name and Surname" label.

    Tries the rest of the label line (cut at bin/bint/son/daughter), then the
    two lines above the label, then the three lines below it.
    """
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if not LICENSE_NAME_LABEL.search(line):
            continue
        logger.debug("Found name label at line %d: %r", i, line)

        remaining = LICENSE_NAME_LABEL_PREFIX.sub("", line, count=1).strip()
        if remaining:
            before_relation = RELATIONSHIP_SPLIT.split(remaining)[0]
            if before_relation and is_valid_license_name(before_relation):
                logger.info("Name found on the label line: %r", before_relation.strip())
                return before_relation.strip()

        for j in range(max(0, i - LINES_BEFORE_NAME_LABEL), i):
            previous = lines[j].strip()
            if is_valid_license_name(previous):
                logger.info("Name found above the label at line %d: %r", j, previous)
                return previous

        for j in range(i + 1, min(i + 1 + LINES_AFTER_NAME_LABEL, len(lines))):
            following = lines[j].strip()
            if not following or RELATIONSHIP_ONLY.match(following):
                continue
            if is_valid_license_name(following):
                logger.info("Name found below the label at line %d: %r", j, following)
                return following

    return None


def clean_license_name(name: str) -> str:
    name = re.sub(r"\s+", " ", name)
    name = re.sub(r"[^\w\s]", "", name, flags=re.ASCII)
    return name.strip().upper()


def verify_name(text: str, first_name: Optional[str] = None,
                last_name: Optional[str] = None) -> NameVerification:
    """
    Compare the license holder name with the profile name.

    Without a profile name there is nothing to compare, so the check passes.
    Otherwise both the first and the last name must be found among the
    extracted tokens (any order) with a similarity of at least 0.75.
    """
    if not (first_name or "").strip() or not (last_name or "").strip():
        return NameVerification(name_match=True, extracted_name=None)

    extracted = extract_license_name(text or "")
    if not extracted:
        logger.warning("Could not extract name from license text")
        return NameVerification(name_match=False, extracted_name=None)

    extracted = clean_license_name(extracted)
    license_name = normalize_string(extracted)
    profile_first = normalize_string(first_name)
    profile_last = normalize_string(last_name)
    profile_name = normalize_string(f"{first_name} {last_name}")

    tokens = [w for w in license_name.split(" ") if len(w) > 1]
    first_match, last_match = tokens_match_name(tokens, profile_first, profile_last)
    similarity = calculate_string_similarity(license_name, profile_name)

    logger.info(
        "Name matching - license: %r, profile: %r, first: %s, last: %s, similarity: %d%%",
        extracted, f"{first_name} {last_name}", first_match, last_match, to_percent(similarity),
    )
    return NameVerification(
        name_match=first_match and last_match,
        extracted_name=extracted,
        details=NameMatchDetails(
            extracted_name=extracted,
            profile_name=f"{first_name} {last_name}",
            similarity_score=to_percent(similarity),
        ),
    )


# ------------------------------------------------------------
# ID card
# ------------------------------------------------------------

ID_CARD_PATTERNS = [
    re.compile(r"KARTA.*TAL.*IDENTIT", re.I),
    re.compile(r"IDENTITY.*CARD", re.I),
    re.compile(r"REPUBBLIKA.*TA.*MALTA", re.I),
    re.compile(r"REPUBLIC.*OF.*MALTA", re.I),
    re.compile(r"ISEM.*NAME", re.I),
    re.compile(r"NRU.*NO.*\d{7,8}[A-Z]", re.I),
    re.compile(r"NAZZJONAL", re.I),
    re.compile(r"NATIONALITY", re.I),
    re.compile(r"MLT"),
    re.compile(r"TISWA.*MINN.*VALID.*FROM", re.I),
    re.compile(r"TISWA.*SA.*VALID.*UNTIL", re.I),
]
MIN_ID_CARD_PATTERNS = 2

ID_NAME_LABEL = re.compile(r"ISEM.*/?.*NAME", re.I)
ID_NAME_LABEL_PREFIX = re.compile(r".*ISEM\s*/?\s*NAME[:\s]*", re.I)
ID_NAME_LABEL_ALONE = re.compile(r"^(?:ISEM|NAME)\b", re.I)
ID_NEXT_FIELD = re.compile(r"^(SESS|SEX|NAZZJONAL|NATIONALITY|DATA|DATE|TISWA|VALID|FIRMA|SIGNATURE)", re.I)
ID_DOCUMENT_NUMBER = re.compile(r"NRU|NO\.|DOC|CAN|\d{7,}", re.I)
ID_INVALID_NAMES = [
    re.compile(pattern, re.I)
    for pattern in (
        r"^ISEM$", r"^NAME$", r"^KARTA", r"^IDENTITY", r"^CARD", r"^REPUBBLIKA",
        r"^REPUBLIC", r"^MALTA", r"^NAZZJONAL", r"^NATIONALITY", r"^DATA",
        r"^DATE", r"^BIRTH", r"^TWEILD", r"^\d+$", r"^MLT$", r"^M$", r"^F$",
    )
]
MIN_LETTER_DENSITY = 0.7
ID_NAME_LOOKAHEAD = 4
ID_NAME_MAX_LINES = 2


def count_id_card_patterns(text: str) -> int:
    return sum(1 for pattern in ID_CARD_PATTERNS if pattern.search(text or ""))


def is_valid_id_card_name(candidate: str) -> bool:
    if len(candidate) < 2:
        return False
    if not re.search(r"[a-zA-Z]", candidate):
        return False

    letters = len(re.findall(r"[a-zA-Z]", candidate))
    total = len(re.sub(r"\s", "", candidate))
    if total > 0 and letters / total < MIN_LETTER_DENSITY:
        return False

    if ID_DOCUMENT_NUMBER.search(candidate):
        return False
    return not any(pattern.search(candidate) for pattern in ID_INVALID_NAMES)


def clean_id_card_name(name: str) -> str:
    name = name.strip()
    name = re.sub(r"^[^a-zA-Z]+", "", name)
    name = re.sub(r"[^a-zA-Z\s'-]+$", "", name)
    name = re.sub(r"\s+", " ", name)
    return name.strip()


def _collect_name_lines(lines: List[str], label_index: int) -> List[str]:
    """Up to two valid lines after the label (surname and first name are often split)."""
    parts: List[str] = []
    for j in range(label_index + 1, min(label_index + 1 + ID_NAME_LOOKAHEAD, len(lines))):
        candidate = lines[j].strip()
        if ID_NEXT_FIELD.match(candidate):
            break
        if candidate and is_valid_id_card_name(candidate):
            parts.append(candidate)
            if len(parts) >= ID_NAME_MAX_LINES:
                break
    return parts


def extract_id_card_name(text: str) -> Optional[str]:
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]

    for i, line in enumerate(lines):
        if not (ID_NAME_LABEL.search(line) or (re.search("ISEM", line, re.I) and re.search("NAME", line, re.I))):
            continue
        logger.debug("Found ISEM/NAME label at line %d: %r", i, line)

        same_line = ID_NAME_LABEL_PREFIX.sub("", line, count=1)
        same_line = re.sub("ISEM", "", same_line, count=1, flags=re.I)
        same_line = re.sub("NAME", "", same_line, count=1, flags=re.I).strip()
        if same_line and is_valid_id_card_name(same_line):
            logger.info("Name extracted from the label line: %r", same_line)
            return clean_id_card_name(same_line)

        parts = _collect_name_lines(lines, i)
        if parts:
            logger.info("Name from %d line(s) after the label: %r", len(parts), " ".join(parts))
            return clean_id_card_name(" ".join(parts))

    for i, line in enumerate(lines):
        if not ID_NAME_LABEL_ALONE.search(line):
            continue
        parts = _collect_name_lines(lines, i)
        if parts:
            logger.info("Name from bare label at line %d: %r", i, " ".join(parts))
            return clean_id_card_name(" ".join(parts))

    logger.warning("Could not extract name from ID card")
    return None


def verify_id_card_name(id_card_name: str, first_name: str, last_name: str):
    """
    Match the ID card name against the profile, allowing
    max(1, 25% of the profile name length) edits per name.

    Returns:
        tuple: (matches, similarity_score 0-100)
    """
    card_name = id_card_name.upper()
    profile_name = f"{first_name} {last_name}".upper()
    profile_first = first_name.strip().upper()
    profile_last = last_name.strip().upper()

    first_match = False
    last_match = False
    for word in (w for w in re.split(r"\s+", card_name) if len(w) > 1):
        if within_edit_tolerance(word, profile_first):
            first_match = True
        if within_edit_tolerance(word, profile_last):
            last_match = True

    max_length = max(len(card_name), len(profile_name))
    if max_length == 0:
        similarity = 100
    else:
        distance = levenshtein_distance(card_name, profile_name)
        similarity = to_percent((max_length - distance) / max_length)

    logger.info(
        "ID card name matching - card: %r, profile: %r, first: %s, last: %s, similarity: %d%%",
        card_name, profile_name, first_match, last_match, similarity,
    )
    return first_match and last_match, similarity
