"""
File storage abstraction layer supporting both local filesystem and AWS S3.

Candidate CVs and derived portraits are stored as blobs here; database rows
keep only the returned storage path. Switching between local storage (for
development) and S3 (for production) is driven by ``settings.USE_S3``.
"""

import logging
import os
import uuid
from functools import lru_cache
from io import BytesIO
import boto3
from botocore.exceptions import ClientError
from talentflow.core.config import settings

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class StorageError(Exception):
    """Raised when a blob cannot be written to or read from the backend"""
    pass


class StorageBackend:
    """Abstract base class for storage backends"""

    def upload_bytes(self, content: bytes, folder: str, content_type: str) -> str:
        """Store content and return storage path/URL"""
        raise NotImplementedError

    def download_file(self, file_path: str) -> BytesIO:
        """Download file and return as BytesIO object"""
        raise NotImplementedError

    def delete_file(self, file_path: str) -> bool:
        """Delete file from storage"""
        raise NotImplementedError

    @staticmethod
    def _make_name(content_type: str) -> str:
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type, "bin")
        return f"{uuid.uuid4()}.{extension}"


class LocalStorage(StorageBackend):
    """Local filesystem storage backend"""

    def __init__(self, base_dir: str = "uploads"):
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)

    def upload_bytes(self, content: bytes, folder: str, content_type: str) -> str:
        """Save content under <base_dir>/<folder>/ with a UUID-based name"""
        target_dir = os.path.join(self.base_dir, folder)
        os.makedirs(target_dir, exist_ok=True)
        file_path = os.path.join(target_dir, self._make_name(content_type))

        with open(file_path, "wb") as buffer:
            buffer.write(content)

        return file_path

    def download_file(self, file_path: str) -> BytesIO:
        """Read file from local filesystem"""
        with open(file_path, "rb") as f:
            return BytesIO(f.read())

    def delete_file(self, file_path: str) -> bool:
        """Delete file from local filesystem"""
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
                return True
            return False
        except OSError as e:
            logger.error(f"Error deleting file {file_path}: {e}")
            return False


class S3Storage(StorageBackend):
    """AWS S3 storage backend"""

    def __init__(self):
        self.bucket_name = settings.S3_BUCKET_NAME

        # If AWS_ACCESS_KEY_ID is not set, boto3 will use IAM roles (for EC2/ECS)
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION
            )
        else:
            self.s3_client = boto3.client('s3', region_name=settings.AWS_REGION)

    def upload_bytes(self, content: bytes, folder: str, content_type: str) -> str:
        """Upload content to S3 and return an s3:// URI"""
        s3_key = f"{folder}/{self._make_name(content_type)}"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=content,
                ContentType=content_type,
                ServerSideEncryption='AES256'
            )
            return f"s3://{self.bucket_name}/{s3_key}"

        except ClientError as e:
            logger.error(f"Error uploading to S3: {e}")
            raise StorageError(f"Failed to upload file to S3: {e}") from e

    def download_file(self, file_path: str) -> BytesIO:
        """Download file from S3 and return as BytesIO"""
        s3_key = self._parse_s3_uri(file_path)

        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=s3_key)
            return BytesIO(response['Body'].read())

        except ClientError as e:
            logger.error(f"Error downloading from S3: {e}")
            raise StorageError(f"Failed to download file from S3: {e}") from e

    def delete_file(self, file_path: str) -> bool:
        """Delete file from S3"""
        s3_key = self._parse_s3_uri(file_path)

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError as e:
            logger.error(f"Error deleting from S3: {e}")
            return False

    def _parse_s3_uri(self, s3_uri: str) -> str:
        """Parse S3 URI and extract key

        Supports formats:
        - s3://bucket-name/key/path
        - cvs/uuid.pdf (assumes default bucket)
        """
        if s3_uri.startswith("s3://"):
            parts = s3_uri.replace("s3://", "").split("/", 1)
            if len(parts) == 2:
                return parts[1]
            raise ValueError(f"Invalid S3 URI format: {s3_uri}")
        return s3_uri


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Get storage backend based on USE_S3 setting"""
    if settings.USE_S3:
        if not settings.S3_BUCKET_NAME:
            raise ValueError("S3_BUCKET_NAME must be set when USE_S3=True")
        return S3Storage()
    return LocalStorage(settings.UPLOAD_DIR)
