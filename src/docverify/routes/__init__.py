from docverify.routes.documents import documents_bp
from docverify.routes.license_categories import license_categories_bp
from docverify.routes.uploads import uploads_bp

def register_blueprints(app):
    """Register all app routes."""
    app.register_blueprint(documents_bp, url_prefix="/api")
    app.register_blueprint(license_categories_bp, url_prefix="/api")
    app.register_blueprint(uploads_bp)
