# Image processing utilities
from .image_utils import (
    convert_heic_to_jpeg,
    validate_image_file,
    preprocess_id_card_image,
    FileValidation,
)

# Text extraction utilities
from .extraction_tools import (
    check_expiration_date,
    verify_name,
    extract_id_card_name,
    verify_id_card_name,
)

# Fuzzy matching utilities
from .name_matching import calculate_string_similarity, levenshtein_distance

__all__ = [
    # Image processing
    "convert_heic_to_jpeg",
    "validate_image_file",
    "preprocess_id_card_image",
    "FileValidation",
    # Extraction
    "check_expiration_date",
    "verify_name",
    "extract_id_card_name",
    "verify_id_card_name",
    # Matching
    "calculate_string_similarity",
    "levenshtein_distance",
]
