from flask import Blueprint, request, jsonify

from docverify.models import LicenseTypes
from docverify.services.license_categories import get_allowed_categories, get_active_licenses

license_categories_bp = Blueprint("license_categories", __name__)


@license_categories_bp.route("/license-categories", methods=["GET"])
def allowed_categories():
    """
    List the listing categories allowed for a set of licenses.
    Query parameters:
      - tslA, tslASpecial, tslB, hunting, collectorsA, collectorsASpecial: true/false
    Returns:
      - JSON object with the active licenses and allowed categories.
    """
    license_types = LicenseTypes.from_dict(request.args.to_dict())
    return jsonify({
        "licenses": get_active_licenses(license_types),
        "categories": get_allowed_categories(license_types),
    }), 200
