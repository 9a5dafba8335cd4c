from flask import Blueprint, send_from_directory, abort

from docverify.config.config import Config
from docverify.utils.storage import LocalStorage

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.route("/uploads/<path:filename>", methods=["GET"])
def uploaded_file(filename):
    """Serve documents saved by the local storage backend."""
    if Config.USE_S3:
        abort(404)
    return send_from_directory(LocalStorage(Config.LOCAL_UPLOAD_DIR).root, filename)
