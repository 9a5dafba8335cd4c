from .document_verification import verify_license_image, verify_id_card_image
from .document_upload import upload_and_verify_license, upload_and_verify_id_card
from .orientation import find_best_orientation
from .license_categories import detect_license_types, get_allowed_categories

__all__ = [
    "verify_license_image",
    "verify_id_card_image",
    "upload_and_verify_license",
    "upload_and_verify_id_card",
    "find_best_orientation",
    "detect_license_types",
    "get_allowed_categories",
]
