"""
Image Pipeline
Resizes uploaded photos and stores them in S3, returning stable keys
"""
from __future__ import annotations

import io
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.exceptions import ImageStorageError

logger = logging.getLogger(__name__)


@dataclass
class RawImage:
    """An uploaded file as received from the client."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


def resize_image(content: bytes, max_size: Tuple[int, int]) -> Tuple[bytes, str]:
    """
    Fit an image inside max_size (width, height), keeping aspect ratio.

    Smaller images are returned untouched; the original format is kept.
    Returns (bytes, format name in lower case).
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            fmt = img.format or "JPEG"
            if img.width <= max_size[0] and img.height <= max_size[1]:
                return content, fmt.lower()
            img.thumbnail(max_size)
            out = io.BytesIO()
            img.save(out, format=fmt)
            return out.getvalue(), fmt.lower()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageStorageError(f"Unsupported image: {e}") from e


class S3ImageStore:
    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        max_size: Optional[Tuple[int, int]] = None,
        workers: Optional[int] = None,
        client=None,
    ):
        self.bucket = bucket if bucket is not None else settings.AWS_BUCKET_NAME
        self.region = region or settings.AWS_REGION
        self.max_size = max_size or (settings.IMAGE_MAX_WIDTH, settings.IMAGE_MAX_HEIGHT)
        self.workers = workers or settings.IMAGE_UPLOAD_WORKERS
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _store_one(self, client, image: RawImage, owner_id: str) -> Dict[str, str]:
        if not self.bucket:
            raise ImageStorageError("AWS_BUCKET_NAME is not configured")

        body, fmt = resize_image(image.content, self.max_size)
        key = f"{uuid.uuid4().hex}.{fmt}"
        try:
            client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=image.content_type or f"image/{fmt}",
                Metadata={"uploadedBy": owner_id},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[image] Upload to S3 failed for {image.filename}: {e}")
            raise ImageStorageError("Upload to S3 failed") from e

        logger.info(f"[image] Stored {image.filename} as {key}")
        return {"url": self.public_url(key), "key": key, "uploadedBy": owner_id}

    def store(self, images: Sequence[RawImage], owner_id) -> List[Dict[str, str]]:
        """
        Resize and upload every image concurrently.

        Returns one {url, key, uploadedBy} record per image, in input order.
        The first failure fails the whole call.
        """
        if not images:
            return []
        owner = str(owner_id)
        # boto3 client creation is not thread-safe
        client = self.client
        with ThreadPoolExecutor(max_workers=min(self.workers, len(images))) as pool:
            return list(pool.map(lambda img: self._store_one(client, img, owner), images))

    def delete(self, key: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[image] Delete from S3 failed for {key}: {e}")
            raise ImageStorageError("Delete from S3 failed") from e
        logger.info(f"[image] Deleted {key}")
        return True
