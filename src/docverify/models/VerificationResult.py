from dataclasses import dataclass, asdict, field
from typing import Dict, Optional

'''
Result Models
They carry the verdicts of the license and ID card verification services.
Nothing here is persisted; callers decide what to store.
 '''

ORIENTATION_CORRECT = "correct"
ORIENTATION_ROTATED = "rotated"
ORIENTATION_UNKNOWN = "unknown"


@dataclass
class LicenseTypes:
    tsl_a: bool = False
    tsl_a_special: bool = False
    tsl_b: bool = False
    hunting: bool = False
    collectors_a: bool = False
    collectors_a_special: bool = False

    # snake_case field -> camelCase key used by the marketplace front end
    KEYS = {
        "tsl_a": "tslA",
        "tsl_a_special": "tslASpecial",
        "tsl_b": "tslB",
        "hunting": "hunting",
        "collectors_a": "collectorsA",
        "collectors_a_special": "collectorsASpecial",
    }

    def has_any(self) -> bool:
        return any(asdict(self).values())

    def to_dict(self) -> Dict[str, bool]:
        return {self.KEYS[name]: value for name, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict) -> "LicenseTypes":
        fields = {}
        for name, key in cls.KEYS.items():
            value = data.get(key, data.get(name, False))
            if isinstance(value, str):
                value = value.lower() in ("1", "true", "yes", "on")
            fields[name] = bool(value)
        return cls(**fields)


@dataclass
class NameMatchDetails:
    extracted_name: str
    profile_name: str
    similarity_score: int  # 0-100, diagnostic only

    def to_dict(self, name_key: str = "licenseName") -> Dict:
        return {
            name_key: self.extracted_name,
            "profileName": self.profile_name,
            "similarityScore": self.similarity_score,
        }


@dataclass
class NameVerification:
    name_match: bool
    extracted_name: Optional[str] = None
    details: Optional[NameMatchDetails] = None


@dataclass
class ExpiryCheck:
    is_expired: bool
    expiry_date: Optional[str]  # YYYY-MM-DD
    has_date: bool


@dataclass
class LicenseVerificationResult:
    is_verified: bool = False
    text: str = ""
    is_expired: bool = True
    expiry_date: Optional[str] = None
    orientation: str = ORIENTATION_UNKNOWN
    rotation_angle: int = 0
    corrected_image_url: Optional[str] = None
    has_date: bool = False
    has_header: bool = False
    confidence: float = 0.0
    name_match: bool = False
    extracted_name: Optional[str] = None
    name_match_details: Optional[NameMatchDetails] = None
    license_types: LicenseTypes = field(default_factory=LicenseTypes)

    @classmethod
    def failed(cls) -> "LicenseVerificationResult":
        """Conservative verdict returned when verification could not run."""
        return cls()

    def to_dict(self, include_image: bool = False) -> Dict:
        result = {
            "isVerified": self.is_verified,
            "text": self.text,
            "isExpired": self.is_expired,
            "expiryDate": self.expiry_date,
            "orientation": self.orientation,
            "rotationAngle": self.rotation_angle,
            "hasDate": self.has_date,
            "hasHeader": self.has_header,
            "confidence": self.confidence,
            "nameMatch": self.name_match,
            "extractedName": self.extracted_name,
            "licenseTypes": self.license_types.to_dict(),
        }
        if self.name_match_details is not None:
            result["nameMatchDetails"] = self.name_match_details.to_dict("licenseName")
        if include_image:
            result["correctedImageUrl"] = self.corrected_image_url
        return result


@dataclass
class IdCardVerificationResult:
    is_verified: bool = False
    text: str = ""
    name_match: bool = False
    extracted_name: Optional[str] = None
    name_match_details: Optional[NameMatchDetails] = None
    pattern_matches: int = 0

    def to_dict(self) -> Dict:
        result = {
            "isVerified": self.is_verified,
            "text": self.text,
            "nameMatch": self.name_match,
            "extractedName": self.extracted_name,
            "patternMatches": self.pattern_matches,
        }
        if self.name_match_details is not None:
            result["nameMatchDetails"] = self.name_match_details.to_dict("idCardName")
        return result
