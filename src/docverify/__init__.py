import logging

from flask import Flask
from werkzeug.utils import import_string

from docverify.config.config import Config
from docverify.routes import register_blueprints
from docverify.extensions.mail import mail

from typing import Optional, Union

def create_app(config_object: Optional[Union[str, object]] = None):
    """App factory: load config, init extensions, register blueprints."""
    config = config_object or Config
    if isinstance(config, str):
        config = import_string(config)

    app = Flask(__name__)
    app.config.from_object(config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # fail fast if S3 or mail is switched on without credentials
    if hasattr(config, "validate_required"):
        config.validate_required()

    mail.init_app(app)

    register_blueprints(app)
    return app
