import logging

from flask import Blueprint, request, jsonify, current_app

from docverify.models import ImageFile
from docverify.services import (
    upload_and_verify_license,
    upload_and_verify_id_card,
    verify_license_image,
)
from docverify.utils.image_utils import validate_image_file
from docverify.utils.mail_utils import notify_manual_review
from docverify.utils.storage import get_storage

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__)


def _uploaded_image():
    storage = request.files.get("file")
    if storage is None or not storage.filename:
        return None
    return ImageFile.from_storage(storage)


def _request_review(document_type: str, first_name, last_name, result) -> None:
    info = {
        "Document_Type": document_type,
        "Full_Name": " ".join(part for part in (first_name, last_name) if part),
        "Public_URL": result.public_url,
        "Issues": [issue.lstrip("• ") for issue in result.verification_issues],
    }
    notify_manual_review(current_app.config.get("MANUAL_REVIEW_EMAIL"), info)


@documents_bp.route("/verify-license", methods=["POST"])
def verify_license():
    """
    Verify and store a firearms license photo.
    Form fields:
      - file: the image (JPEG, PNG or HEIC)
      - first_name, last_name: optional profile name to match
    Returns:
      - JSON upload result; 400 if the file was rejected or could not be stored.
    """
    image = _uploaded_image()
    if image is None:
        return jsonify({"error": "Missing file"}), 400

    first_name = request.form.get("first_name")
    last_name = request.form.get("last_name")

    try:
        result = upload_and_verify_license(
            image,
            first_name,
            last_name,
            storage=get_storage(),
            on_progress=lambda value: logger.debug("License upload progress: %s%%", value),
            max_size_mb=current_app.config.get("MAX_UPLOAD_SIZE_MB"),
        )
    except Exception as e:
        logger.exception("License upload failed")
        return jsonify({"error": str(e)}), 500

    if result.needs_manual_review:
        _request_review("Firearms License", first_name, last_name, result)

    return jsonify(result.to_dict()), 200 if result.success else 400


@documents_bp.route("/verify-id-card", methods=["POST"])
def verify_id_card():
    """
    Verify and store an identity card photo.
    Form fields:
      - file: the image (JPEG, PNG or HEIC)
      - first_name, last_name: profile name, required
    Returns:
      - JSON upload result; 400 if the card could not be processed or stored.
    """
    image = _uploaded_image()
    if image is None:
        return jsonify({"error": "Missing file"}), 400

    first_name = request.form.get("first_name", "").strip()
    last_name = request.form.get("last_name", "").strip()
    if not first_name or not last_name:
        return jsonify({"error": "first_name and last_name are required"}), 400

    try:
        result = upload_and_verify_id_card(
            image,
            first_name,
            last_name,
            storage=get_storage(),
            on_progress=lambda value: logger.debug("ID card upload progress: %s%%", value),
            max_size_mb=current_app.config.get("MAX_UPLOAD_SIZE_MB"),
        )
    except Exception as e:
        logger.exception("ID card upload failed")
        return jsonify({"error": str(e)}), 500

    if result.needs_manual_review:
        _request_review("ID Card", first_name, last_name, result)

    return jsonify(result.to_dict()), 200 if result.success else 400


@documents_bp.route("/check-license", methods=["POST"])
def check_license():
    """
    Run license verification without storing the image.
    Returns:
      - JSON verification result.
    """
    image = _uploaded_image()
    if image is None:
        return jsonify({"error": "Missing file"}), 400

    validation = validate_image_file(image, current_app.config.get("MAX_UPLOAD_SIZE_MB", 5))
    if not validation.valid:
        return jsonify({"error": str(validation.error)}), 400

    try:
        result = verify_license_image(
            image,
            request.form.get("first_name"),
            request.form.get("last_name"),
        )
    except Exception as e:
        logger.exception("License check failed")
        return jsonify({"error": str(e)}), 500
    return jsonify(result.to_dict()), 200
