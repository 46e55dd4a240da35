"""
Blob storage for image and gif uploads.

This module provides:
- BlobStore: the interface content ingestion talks to
- S3BlobStore: boto3 implementation for Cloudflare R2 / S3
- get_s3_client(): a configured boto3 S3 client
- get_blob_store(): the store configured by GALLERY_BLOB_STORE
"""

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string
from PIL import Image, UnidentifiedImageError

from .exceptions import BlobStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Where an upload ended up."""

    url: str
    key: str
    thumbnail_url: Optional[str] = None


class BlobStore:
    """
    Interface for binary storage.

    `store` either returns a StoredBlob or raises BlobStoreError; it never
    returns a partial result.
    """

    def store(self, data: bytes, kind_hint: str, filename: str) -> StoredBlob:
        raise NotImplementedError


def get_s3_client():
    """
    Get a boto3 S3 client configured for Cloudflare R2.

    Returns:
        boto3 S3 client configured with R2 credentials and endpoint
    """
    return boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        endpoint_url=settings.AWS_S3_ENDPOINT_URL,
        region_name=settings.AWS_S3_REGION_NAME,
        config=Config(
            signature_version=settings.AWS_S3_SIGNATURE_VERSION,
            s3={"addressing_style": settings.AWS_S3_ADDRESSING_STYLE},
        ),
    )


def build_object_key(kind_hint: str, filename: str, date=None) -> str:
    """Key format: {YYYY-MM-DD}/{kind}/{filename}"""
    date = date or timezone.now().date()
    return f"{date.isoformat()}/{kind_hint}/{PurePosixPath(filename).name}"


def extract_first_frame(data: bytes) -> bytes:
    """Render the first frame of an animated image as JPEG bytes."""
    with Image.open(io.BytesIO(data)) as img:
        img.seek(0)
        frame = img.convert("RGB")
        buffer = io.BytesIO()
        frame.save(buffer, format="JPEG", quality=85)
    return buffer.getvalue()


class S3BlobStore(BlobStore):
    """Uploads to the bucket named by AWS_STORAGE_BUCKET_NAME."""

    def __init__(self, client=None, bucket=None, public_base_url=None):
        self.client = client or get_s3_client()
        self.bucket = bucket or settings.AWS_STORAGE_BUCKET_NAME
        self.public_base_url = (
            public_base_url
            if public_base_url is not None
            else getattr(settings, "AWS_S3_PUBLIC_BASE_URL", "")
        )

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        endpoint = settings.AWS_S3_ENDPOINT_URL or "https://s3.amazonaws.com"
        return f"{endpoint.rstrip('/')}/{self.bucket}/{key}"

    def _put(self, key: str, data: bytes, content_type: str):
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("Upload of %s to %s failed: %s", key, self.bucket, exc)
            raise BlobStoreError(f"Upload of {key} failed: {exc}") from exc

    def store(self, data: bytes, kind_hint: str, filename: str) -> StoredBlob:
        key = build_object_key(kind_hint, filename)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        thumbnail_bytes = None
        if kind_hint == "gif":
            try:
                thumbnail_bytes = extract_first_frame(data)
            except (UnidentifiedImageError, OSError) as exc:
                raise BlobStoreError(f"Could not read gif {filename}: {exc}") from exc

        self._put(key, data, content_type)
        logger.info("Stored %s (%s bytes) as %s", filename, len(data), key)

        thumbnail_url = None
        if thumbnail_bytes is not None:
            stem = PurePosixPath(filename).stem
            thumbnail_key = f"{key.rsplit('/', 1)[0]}/thumbnails/{stem}.jpg"
            self._put(thumbnail_key, thumbnail_bytes, "image/jpeg")
            thumbnail_url = self.url_for(thumbnail_key)

        return StoredBlob(url=self.url_for(key), key=key, thumbnail_url=thumbnail_url)


def get_blob_store() -> BlobStore:
    """Instantiate the store class named by GALLERY_BLOB_STORE."""
    path = getattr(settings, "GALLERY_BLOB_STORE", "gallery.storage.S3BlobStore")
    return import_string(path)()
