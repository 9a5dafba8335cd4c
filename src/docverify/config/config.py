import os
from dotenv import load_dotenv

# Load environment variables from the .env file
load_dotenv()

class Config:
    """
    App configuration loaded from environment variables.

    Required (only when USE_S3 is enabled):
      - AWS_ACCESS_KEY
      - AWS_SECRET_KEY
      - S3_BUCKET_NAME

    Optional:
      (defaults)
      - FLASK_HOST: host to run the Flask app on (default: 0.0.0.0)
      - FLASK_PORT: port to run the Flask app on (default: 5000)
      - FLASK_DEBUG: enable/disable debug mode (default: true)
      - LOG_LEVEL: root log level (default: INFO)
      - REGION_NAME: AWS region (default: eu-south-1)

      (OCR)
      - TESSERACT_CMD: path to the tesseract binary (default: found on PATH)
      - OCR_LANG: tesseract language (default: eng)
      - OCR_TIMEOUT_SECONDS: upper bound for a single OCR pass (default: 30)

      (uploads)
      - MAX_UPLOAD_SIZE_MB: largest accepted image (default: 5)
      - USE_S3: store uploads in S3 instead of the local upload folder (default: false)
      - LOCAL_UPLOAD_DIR: folder for local uploads (default: <project root>/data/uploads)
      - PRESIGNED_URL_EXPIRATION: seconds an S3 link stays valid (default: 3600)

      (only required if staff should be emailed about uploads needing manual review)
      - MAIL_SERVER, MAIL_PORT, MAIL_USE_TLS, MAIL_USERNAME, MAIL_PASSWORD
      - MAIL_DEFAULT_SENDER
      - MANUAL_REVIEW_EMAIL: comma separated staff addresses

    Copy .env.example -> .env and fill the required values.
    """
    # Flask
    FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.getenv("FLASK_PORT", 5000))
    FLASK_DEBUG = os.getenv('FLASK_DEBUG', 'true').lower() == 'true'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # OCR
    TESSERACT_CMD = os.getenv('TESSERACT_CMD')
    OCR_LANG = os.getenv('OCR_LANG', 'eng')
    OCR_TIMEOUT_SECONDS = int(os.getenv('OCR_TIMEOUT_SECONDS', 30))

    # Uploads
    MAX_UPLOAD_SIZE_MB = float(os.getenv('MAX_UPLOAD_SIZE_MB', 5))
    # Flask rejects bodies above this before the view runs; leave headroom for form fields.
    MAX_CONTENT_LENGTH = int((MAX_UPLOAD_SIZE_MB + 1) * 1024 * 1024)
    USE_S3 = os.getenv('USE_S3', 'false').lower() == 'true'
    LOCAL_UPLOAD_DIR = os.getenv('LOCAL_UPLOAD_DIR')
    PRESIGNED_URL_EXPIRATION = int(os.getenv('PRESIGNED_URL_EXPIRATION', 3600))

    # AWS
    AWS_ACCESS_KEY = os.getenv('AWS_ACCESS_KEY')
    AWS_SECRET_KEY = os.getenv('AWS_SECRET_KEY')
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME')
    REGION_NAME = os.getenv('REGION_NAME', 'eu-south-1')

    # Flask-Mail
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.getenv('MAIL_PORT', 25))
    MAIL_USE_TLS = os.getenv('MAIL_USE_TLS', 'false').lower() == 'true'
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER')
    MANUAL_REVIEW_EMAIL = [
        address.strip()
        for address in os.getenv('MANUAL_REVIEW_EMAIL', '').split(',')
        if address.strip()
    ]

    @classmethod
    def validate_required(cls) -> None:
        """
        Validates that all required environment variables are set as class attributes.

        The AWS credentials are only required when uploads go to S3.

        Raises:
            RuntimeError: If any of the required environment variables are missing,
            listing the names of the missing variables.
        """
        required_vars = []
        if cls.USE_S3:
            required_vars += [
                'AWS_ACCESS_KEY',
                'AWS_SECRET_KEY',
                'S3_BUCKET_NAME',
            ]
        if cls.MANUAL_REVIEW_EMAIL:
            required_vars.append('MAIL_DEFAULT_SENDER')
        missing = [name for name in required_vars if not getattr(cls, name)]
        if missing:
            raise RuntimeError(f"Missing required config env vars: {', '.join(missing)}")
