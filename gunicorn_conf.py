import os
import sys

# Ensure the src directory is on sys.path so "import docverify" works
ROOT = os.path.abspath(os.path.dirname(__file__))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from docverify.config.config import Config

bind = f"{Config.FLASK_HOST}:{Config.FLASK_PORT}"
workers = int(os.getenv("GUNICORN_WORKERS", 2))
# OCR engines are created per request, so threads share nothing
threads = int(os.getenv("GUNICORN_THREADS", 2))
# four OCR passes per document, each bounded by OCR_TIMEOUT_SECONDS
timeout = Config.OCR_TIMEOUT_SECONDS * 4 + 30
wsgi_app = "main:app"

def when_ready(server):
    """
    Gunicorn hook executed in the master process when the server is ready.
    """
    server.log.info(f"Document verification service ready on {bind} (timeout={timeout}s)")
