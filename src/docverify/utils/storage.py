import logging
import shutil
from pathlib import Path
from typing import Optional

import boto3

from docverify.config.config import Config

logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=3600"


class S3Storage:
    """
    Stores uploaded documents in S3.
    """

    def __init__(self, bucket_name: Optional[str] = None, client=None):
        self.s3 = client or boto3.client(
            's3',
            aws_access_key_id=Config.AWS_ACCESS_KEY,
            aws_secret_access_key=Config.AWS_SECRET_KEY,
            region_name=Config.REGION_NAME
        )
        self.bucket_name = bucket_name or Config.S3_BUCKET_NAME

    def upload_object(self, file_obj, key, mime_type):
        """
        Upload an in-memory file-like object (e.g., BytesIO) to S3.

        Args:
            file_obj (BytesIO): The in-memory file-like object to upload.
            key (str): The destination key (path) inside the S3 bucket.
            mime_type (str): MIME type (Content-Type) of the uploaded object.

        Returns:
            bool: True if upload was successful, False otherwise.
        """
        try:
            self.s3.upload_fileobj(
                file_obj,
                self.bucket_name,
                key,
                ExtraArgs={'ContentType': mime_type, 'CacheControl': CACHE_CONTROL}
            )
        except Exception as e:
            logger.error("Error uploading file object to S3: %s", e)
            return False
        return True

    def public_url(self, key, expiration=None):
        """
        Generate a presigned URL for an uploaded object.

        Args:
            key (str): S3 object key.
            expiration (int): Time in seconds for the presigned URL to remain valid.
        Returns:
            str: Presigned URL as a string.
        """
        return self.s3.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket_name, 'Key': key},
            ExpiresIn=expiration or Config.PRESIGNED_URL_EXPIRATION
        )


class LocalStorage:
    """
    Stores uploaded documents on disk, served back by the uploads blueprint.
    """

    def __init__(self, root: Optional[str] = None):
        # project root is three parents above this file: src/docverify/utils -> src/docverify -> src -> project root
        project_root = Path(__file__).resolve().parents[3]
        if root:
            p = Path(root)
            self.root = p if p.is_absolute() else (project_root / p)
        else:
            self.root = project_root / "data" / "uploads"

    def path_for(self, key) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Upload key escapes the upload folder: {key}")
        return path

    def upload_object(self, file_obj, key, mime_type):
        try:
            path = self.path_for(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as out:
                shutil.copyfileobj(file_obj, out)
        except Exception as e:
            logger.error("Error saving upload %s locally: %s", key, e)
            return False
        logger.debug("Saved %s (%s) to %s", key, mime_type, path)
        return True

    def public_url(self, key, expiration=None):
        return f"/uploads/{key}"


def get_storage():
    """Return the storage backend selected by USE_S3."""
    if Config.USE_S3:
        return S3Storage()
    return LocalStorage(Config.LOCAL_UPLOAD_DIR)
